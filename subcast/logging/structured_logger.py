"""
구조화 로깅 모듈입니다.

역할:
- 콘솔 로그는 항상 stderr로 출력 (stdout은 원시 프레임 스트림 전용)
- json 포맷: python-json-logger로 한 줄당 JSON 객체 출력
- text 포맷: 세션 ID 접두어 + 가상 시각 표기
- log_dir 지정 시 RotatingFileHandler로 subcast.log 순환 (10MB, 5개 보존)
- 렌더링 루프 동안 가상 시계를 바인딩하여 모든 로그에 프레임 번호/가상 시각 부착

가상 시각 표기:
    렌더링 루프 밖에서 남긴 로그는 시각 정보가 없습니다 (text 포맷에서는 "-").
    루프 안에서는 text 포맷에 "@<now_ms>ms#<frame>"이, json 포맷에
    frame_index / now_ms 필드가 추가됩니다.

사용 예시:
    >>> setup_logging(config)
    >>> bind_clock(pipeline.clock)
    >>> logging.getLogger(__name__).warning("픽셀 읽기 실패")
    ... [1f0c2a9e] WARNING  @1040ms#26 subcast.compositor.frame_emitter: 픽셀 읽기 실패
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO

from pythonjsonlogger import jsonlogger

from subcast.config.schema import AppConfig

if TYPE_CHECKING:
    from subcast.subtitle.timeline_scheduler import VirtualClock

# 로그 파일 이름과 순환 정책
LOG_FILE_NAME = "subcast.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5

_SESSION_ID: str = ""
# 렌더링 루프 동안 바인딩되는 가상 시계
_CLOCK: Optional[VirtualClock] = None


# =============================================================================
# 초기화
# =============================================================================

def setup_logging(
    config: AppConfig,
    session_id: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    루트 로거를 설정합니다. 프로세스 시작 시 main에서 한 번 호출합니다.

    파라미터:
        config: AppConfig 인스턴스 (system 섹션 사용)
        session_id: 세션 식별자. None이면 config.system.session_id 또는 UUID
        stream: 콘솔 로그 출력 스트림. None이면 sys.stderr
    """
    global _SESSION_ID

    _SESSION_ID = session_id or config.system.session_id or str(uuid.uuid4())
    log_level = getattr(logging, config.system.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(stream if stream is not None else sys.stderr)
    ]

    file_handler = _create_file_handler(config.system.log_dir)
    if file_handler is not None:
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(_make_formatter(config.system.log_format, _SESSION_ID))
        root_logger.addHandler(handler)

    logging.getLogger(__name__).info(
        f"로깅 초기화: level={config.system.log_level}, "
        f"format={config.system.log_format}, "
        f"file={'on' if file_handler is not None else 'off'}, "
        f"session={_SESSION_ID}"
    )


def _create_file_handler(log_dir: str) -> Optional[logging.Handler]:
    """log_dir이 비어 있지 않으면 순환 파일 핸들러를 만듭니다. 실패는 경고만 남깁니다."""
    if not log_dir:
        return None

    try:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            filename=directory / LOG_FILE_NAME,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as exc:
        logging.getLogger(__name__).warning(f"로그 파일 핸들러 생성 실패: {log_dir}: {exc}")
        return None


def _make_formatter(log_format: str, session_id: str) -> logging.Formatter:
    if log_format == "json":
        return _JsonFormatter(session_id=session_id)
    return _TextFormatter(session_id=session_id)


# =============================================================================
# 가상 시계 바인딩
# =============================================================================

def bind_clock(clock: Optional[VirtualClock]) -> None:
    """
    로그 레코드에 부착할 가상 시계를 지정합니다. None이면 해제합니다.

    파라미터:
        clock: 렌더링 루프의 VirtualClock
    """
    global _CLOCK
    _CLOCK = clock


def _virtual_time_label() -> str:
    if _CLOCK is None:
        return "-"
    return f"@{_CLOCK.now_ms}ms#{_CLOCK.frame_index}"


# =============================================================================
# 포맷터
# =============================================================================

class _JsonFormatter(jsonlogger.JsonFormatter):
    """
    session_id, module, level 필드와 (루프 중이면) 가상 시각을 추가하는 JSON 포맷터입니다.
    """

    def __init__(self, session_id: str = "") -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        self._session_id = session_id

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["session_id"] = self._session_id
        log_record["module"] = record.name
        log_record["level"] = record.levelname
        if _CLOCK is not None:
            # extra로 명시한 값이 우선
            log_record.setdefault("frame_index", _CLOCK.frame_index)
            log_record.setdefault("now_ms", _CLOCK.now_ms)


class _TextFormatter(logging.Formatter):
    """
    세션 ID 8자 접두어와 가상 시각을 포함하는 텍스트 포맷터입니다.
    """

    def __init__(self, session_id: str = "") -> None:
        sid = session_id[:8] if session_id else "no-sid"
        super().__init__(
            fmt=f"%(asctime)s [{sid}] %(levelname)-8s %(vtime)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.vtime = _virtual_time_label()
        return super().format(record)


class StructuredLogger:
    """
    모듈별 로거와 현재 세션 ID를 제공하는 헬퍼 클래스입니다.

    표준 logging.Logger를 그대로 반환합니다.
    """

    @staticmethod
    def get(name: str) -> logging.Logger:
        """지정된 이름의 로거를 반환합니다 (일반적으로 __name__)."""
        return logging.getLogger(name)

    @staticmethod
    def get_session_id() -> str:
        """현재 세션 ID를 반환합니다."""
        return _SESSION_ID
