"""
자막 프레임 렌더링 파이프라인 모듈입니다.

역할:
- CueReader → TimelineScheduler → FrameCompositor → FrameEmitter 연결
- 단일 스레드 동기 루프로 틱마다 정확히 한 프레임 출력
- 입력 소진/읽기 오류 또는 출력 기록 실패 시 루프 종료

틱 처리 순서:
    1. 스케줄러가 가상 시각 now에 맞춰 큐 상태 갱신 (종료 신호 시 중단)
    2. 컴포지터가 렌더 동작 결정 및 캔버스 반영
    3. 이미터가 프레임을 출력하고 가상 시계 전진 (실패 시 중단)

사용 예시:
    >>> pipeline = Pipeline(config, sys.stdin, sys.stdout.buffer, backend)
    >>> stats = pipeline.run()
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Iterable

from subcast.compositor import RenderStats
from subcast.compositor.frame_compositor import FrameCompositor, PixelBuffer
from subcast.compositor.frame_emitter import FrameEmitter
from subcast.compositor.raster_backend import RasterBackend
from subcast.config.schema import AppConfig
from subcast.logging import bind_clock
from subcast.subtitle.cue_parser import CueReader
from subcast.subtitle.timeline_scheduler import TimelineScheduler, VirtualClock

logger = logging.getLogger(__name__)


class Pipeline:
    """
    자막 큐 입력을 고정 프레임레이트의 원시 RGBA 프레임 스트림으로 변환합니다.

    가상 시계는 실제 시간과 분리되어 있으므로 I/O가 허용하는 속도로
    프레임을 연속 출력합니다. 실시간 페이싱은 하류 소비자의 책임입니다.
    """

    def __init__(
        self,
        config: AppConfig,
        lines: Iterable[str],
        sink: BinaryIO,
        backend: RasterBackend,
    ) -> None:
        """
        Pipeline을 초기화합니다.

        파라미터:
            config: 전체 애플리케이션 설정 객체
            lines: 입력 텍스트 줄 (start<TAB>end<TAB>text)
            sink: 프레임을 기록할 바이너리 출력 스트림
            backend: 래스터화 백엔드 (config.video 크기와 같아야 함)
        """
        self.stats = RenderStats()
        self.clock = VirtualClock(config.video.fps)
        self.pixel_buffer = PixelBuffer(config.video.width, config.video.height)

        self._reader = CueReader(lines)
        self.scheduler = TimelineScheduler(self._reader)
        self.compositor = FrameCompositor(config, backend, self.pixel_buffer, self.stats)
        self.emitter = FrameEmitter(
            backend, self.pixel_buffer, sink, self.clock, self.stats
        )

        logger.info(
            f"Pipeline 초기화 완료: fps={config.video.fps}, "
            f"frame={config.video.width}x{config.video.height}, "
            f"frame_bytes={self.pixel_buffer.frame_size}"
        )

    def tick(self) -> bool:
        """
        한 틱을 실행합니다.

        반환값:
            bool: 계속 진행하면 True, 루프를 종료해야 하면 False
        """
        now_ms = self.clock.now_ms

        if not self.scheduler.advance(now_ms):
            return False

        self.compositor.render(self.scheduler.active, now_ms)
        return self.emitter.emit()

    def run(self) -> RenderStats:
        """
        종료 조건이 될 때까지 틱 루프를 실행합니다.

        반환값:
            RenderStats: 실행 통계
        """
        logger.info("렌더링 루프 시작")
        bind_clock(self.clock)

        try:
            while self.tick():
                pass
        finally:
            bind_clock(None)
            self.emitter.flush()
            self.stats.skipped_lines = self._reader.skipped_lines

        logger.info(
            f"렌더링 루프 종료: frames={self.stats.frames_emitted}, "
            f"redraws={self.stats.redraws}, clears={self.stats.clears}, "
            f"skipped_lines={self.stats.skipped_lines}, "
            f"dropped_cues={self.scheduler.dropped_cues}, "
            f"readback_failures={self.stats.readback_failures}"
        )
        return self.stats
