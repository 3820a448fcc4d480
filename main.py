"""
subcast 진입점

역할:
- 커맨드라인 인자 파싱 및 설정 로드 (YAML + 환경변수)
- 구조화 로깅 초기화 (stderr 전용, stdout은 프레임 스트림)
- Pillow 래스터화 백엔드 생성 (폰트 로드 실패 시 종료)
- 파이프라인: 자막 입력 → TimelineScheduler → FrameCompositor → FrameEmitter → 출력

종료 코드:
    0: 정상 종료 (입력 소진, 입력 읽기 오류, 출력 기록 실패 포함)
    1: 래스터화 백엔드 초기화 실패
    2: 설정 오류

실행 예시:
    환경변수 설정:
        FONT_PATH=/fonts/NotoSans.ttf python main.py < cues.tsv > frames.rgba

    ffmpeg로 인코딩:
        FONT_PATH=font.ttf python main.py --input cues.tsv | \\
            ffmpeg -f rawvideo -pix_fmt rgba -s 1920x1080 -r 25 -i - subs.mov
"""

from __future__ import annotations

import argparse
import contextlib
import io
import logging
import os
import sys
from typing import BinaryIO, Optional, TextIO

from subcast.compositor.raster_backend import PillowRasterBackend, RasterBackendError
from subcast.config.config_manager import ConfigLoadError, ConfigManager
from subcast.config.schema import AppConfig
from subcast.logging import StructuredLogger, setup_logging
from subcast.pipeline import Pipeline

logger = logging.getLogger(__name__)

# 표준 입출력을 뜻하는 경로
_STDIO_PATH = "-"


# =============================================================================
# 진입점
# =============================================================================

def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """커맨드라인 인자를 파싱합니다."""
    parser = argparse.ArgumentParser(
        description="subcast: 자막 큐를 고정 프레임레이트의 원시 RGBA 프레임으로 변환"
    )
    parser.add_argument(
        "--config", default=None, help="YAML 설정 파일 경로 (선택, 환경변수가 우선)"
    )
    parser.add_argument(
        "--input", default=_STDIO_PATH, help="자막 큐 입력 경로 (기본: - = stdin)"
    )
    parser.add_argument(
        "--output", default=_STDIO_PATH, help="프레임 출력 경로 (기본: - = stdout)"
    )
    parser.add_argument(
        "--log-level", default=None, help="로그 레벨 오버라이드 (DEBUG | INFO | WARNING | ERROR)"
    )
    return parser.parse_args(argv)


def _open_input(path: str, stack: contextlib.ExitStack) -> TextIO:
    """
    자막 입력 스트림을 UTF-8 텍스트로 엽니다.

    줄은 '\\n'에서만 나뉩니다. 줄 끝의 '\\r'는 CueReader가 제거하고,
    줄 중간의 '\\r'는 본문에 그대로 남습니다.
    """
    if path == _STDIO_PATH:
        return io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", newline="\n")
    return stack.enter_context(open(path, "r", encoding="utf-8", newline="\n"))


def _open_output(path: str, stack: contextlib.ExitStack) -> BinaryIO:
    """프레임 출력 스트림을 바이너리로 엽니다."""
    if path == _STDIO_PATH:
        return sys.stdout.buffer
    return stack.enter_context(open(path, "wb"))


def main(argv: Optional[list[str]] = None) -> int:
    """subcast를 실행하고 종료 코드를 반환합니다."""
    args = _parse_args(argv)

    # 설정 로드
    manager = ConfigManager()
    try:
        config = manager.load(args.config)
    except ConfigLoadError as exc:
        logger.error(f"설정 로드 실패: {exc}")
        return 2

    # 커맨드라인 오버라이드 (Pydantic 모델을 재생성하여 재검증)
    if args.log_level:
        config_dict = config.model_dump()
        config_dict["system"]["log_level"] = args.log_level
        try:
            config = AppConfig(**config_dict)
        except ValueError as exc:
            logger.error(f"잘못된 --log-level 값: {exc}")
            return 2

    # 로깅 설정
    setup_logging(config)

    logger.info(
        f"subcast 시작: fps={config.video.fps}, "
        f"size={config.video.width}x{config.video.height}, "
        f"baseline={config.subtitle.baseline}, "
        f"font={config.subtitle.font.path} ({config.subtitle.font.size})"
    )

    # 래스터화 백엔드 생성
    try:
        backend = PillowRasterBackend.from_font_path(
            config.video.width,
            config.video.height,
            config.subtitle.font.path,
            config.subtitle.font.size,
        )
    except RasterBackendError as exc:
        logger.error(f"래스터화 백엔드 초기화 실패: {exc}")
        return 1

    # 파이프라인 실행
    with contextlib.ExitStack() as stack:
        try:
            lines = _open_input(args.input, stack)
            sink = _open_output(args.output, stack)
        except OSError as exc:
            logger.error(f"입출력 스트림 열기 실패: {exc}")
            return 1

        pipeline = Pipeline(config, lines, sink, backend)
        pipeline.run()

    if args.output == _STDIO_PATH:
        _release_stdout()

    logger.info(f"subcast 종료: session={StructuredLogger.get_session_id()}")
    return 0


def _release_stdout() -> None:
    """
    하류 소비자가 파이프를 먼저 닫은 경우 인터프리터 종료 시 flush 에러가
    나지 않도록 stdout을 /dev/null로 돌립니다.
    """
    try:
        sys.stdout.flush()
    except BrokenPipeError:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        os.close(devnull)


if __name__ == "__main__":
    sys.exit(main())
