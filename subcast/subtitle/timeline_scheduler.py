"""
타임라인 스케줄러 모듈입니다.

역할:
- 프레임 단위 가상 시계(VirtualClock) 관리
- active/queued 두 슬롯으로 현재 표시할 큐와 다음 큐(1개 lookahead) 관리
- 매 틱마다 만료 → 승격 → 보충 → 지연 승격 순서로 상태 전이
- 입력이 끝나고 두 슬롯이 모두 비면 종료 신호

상태 전이:
    IDLE ──보충──▶ QUEUED_ONLY ──구간 시작──▶ ACTIVE ──만료──▶ IDLE
    IDLE ──보충(구간이 이미 열림)──▶ ACTIVE
    QUEUED_ONLY ──구간 지남(표시된 적 없음)──▶ IDLE

사용 예시:
    >>> scheduler = TimelineScheduler(CueReader(lines))
    >>> while scheduler.advance(clock.now_ms):
    ...     render(scheduler.active)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Iterator, Optional

from subcast.subtitle import Cue

logger = logging.getLogger(__name__)


class VirtualClock:
    """
    프레임 카운터 기반 가상 시계입니다.

    틱 f의 시각은 floor(f * 1000 / fps) 밀리초이며, 실제 경과 시간과
    무관하게 틱마다 정확히 한 프레임씩 전진합니다.
    """

    def __init__(self, fps: int) -> None:
        if fps <= 0:
            raise ValueError(f"fps는 양수여야 합니다. 입력값: {fps}")
        self._fps = fps
        self._frame_index = 0

    @property
    def fps(self) -> int:
        return self._fps

    @property
    def frame_index(self) -> int:
        """현재 틱 번호 (0부터 시작)를 반환합니다."""
        return self._frame_index

    @property
    def frame_duration_ms(self) -> float:
        return 1000.0 / self._fps

    @property
    def now_ms(self) -> int:
        """현재 틱의 가상 시각(밀리초)을 반환합니다."""
        # 정수 연산으로 부동소수점 경계 오차 없이 내림
        return self._frame_index * 1000 // self._fps

    def advance(self) -> None:
        """시계를 한 프레임 전진시킵니다."""
        self._frame_index += 1


class SchedulerState(Enum):
    """active/queued 슬롯 점유 상태입니다."""
    IDLE = "idle"
    ACTIVE = "active"
    ACTIVE_AND_QUEUED = "active_and_queued"
    QUEUED_ONLY = "queued_only"


class TimelineScheduler:
    """
    가상 시각에 따라 표시할 큐를 결정하는 상태 머신입니다.

    불변 조건:
    - active와 queued는 같은 큐 인스턴스가 아니며 각각 최대 1개
    - active보다 앞서 버퍼링하는 큐는 최대 1개 (단일 lookahead)
    - 입력은 두 슬롯이 모두 빈 보충 단계에서만 읽음

    각 전이 메서드(expire_active, promote_queued, refill, late_promote)는
    독립적으로 호출하여 테스트할 수 있습니다.
    """

    def __init__(self, cue_source: Iterable[Cue]) -> None:
        """
        TimelineScheduler를 초기화합니다.

        파라미터:
            cue_source: 유효한 Cue를 순서대로 내주는 이터러블 (보통 CueReader)
        """
        self._source: Iterator[Cue] = iter(cue_source)
        self._active: Optional[Cue] = None
        self._queued: Optional[Cue] = None
        self._source_exhausted: bool = False

        # 표시되지 못하고 버려진 큐 수
        self.dropped_cues: int = 0

    # =========================================================================
    # 상태 조회
    # =========================================================================

    @property
    def active(self) -> Optional[Cue]:
        """현재 렌더링 대상 큐를 반환합니다."""
        return self._active

    @property
    def queued(self) -> Optional[Cue]:
        """대기 중인 다음 큐를 반환합니다."""
        return self._queued

    @property
    def state(self) -> SchedulerState:
        if self._active is not None and self._queued is not None:
            return SchedulerState.ACTIVE_AND_QUEUED
        if self._active is not None:
            return SchedulerState.ACTIVE
        if self._queued is not None:
            return SchedulerState.QUEUED_ONLY
        return SchedulerState.IDLE

    # =========================================================================
    # 틱 진행
    # =========================================================================

    def advance(self, now_ms: int) -> bool:
        """
        가상 시각 now_ms에 대해 한 틱의 상태 전이를 수행합니다.

        처리 순서:
        1. 만료된 active 제거
        2. active가 비어 있으면 queued 승격 또는 폐기
        3. 두 슬롯이 모두 비어 있으면 입력에서 다음 큐 보충
        4. 여전히 active가 없고 queued 구간이 열렸으면 승격

        파라미터:
            now_ms: 현재 틱의 가상 시각 (밀리초)

        반환값:
            bool: 계속 진행하면 True, 입력이 끝나 두 슬롯이 모두 비었으면 False
        """
        self.expire_active(now_ms)
        self.promote_queued(now_ms)

        if self.state is SchedulerState.IDLE and not self.refill(now_ms):
            return False

        self.late_promote(now_ms)
        return True

    # =========================================================================
    # 전이 함수
    # =========================================================================

    def expire_active(self, now_ms: int) -> None:
        """active 큐의 종료 시각이 지났으면 제거합니다."""
        if self._active is not None and self._active.has_expired_at(now_ms):
            logger.debug(
                f"자막 만료: key={self._active.key}, now={now_ms}ms"
            )
            self._active = None

    def promote_queued(self, now_ms: int) -> None:
        """
        active가 비어 있을 때 queued 큐를 처리합니다.

        - 종료 시각이 이미 지났으면 한 번도 표시되지 않은 큐이므로 폐기
        - 구간이 열렸으면 active로 승격
        - 아직 시작 전이면 그대로 대기
        """
        if self._active is not None or self._queued is None:
            return

        if self._queued.has_expired_at(now_ms):
            logger.debug(
                f"표시 전 만료된 자막 폐기: key={self._queued.key}, now={now_ms}ms"
            )
            self._queued = None
            self.dropped_cues += 1
        elif now_ms >= self._queued.start:
            self._promote(now_ms)

    def refill(self, now_ms: int) -> bool:
        """
        두 슬롯이 모두 비어 있을 때 입력에서 다음 큐를 가져옵니다.

        새 큐의 구간이 이미 열려 있으면 같은 틱에 바로 active로 승격합니다.

        반환값:
            bool: 큐를 가져왔으면 True, 입력이 끝났으면 False
        """
        if self.state is not SchedulerState.IDLE:
            return True
        if self._source_exhausted:
            return False

        cue = next(self._source, None)
        if cue is None:
            self._source_exhausted = True
            logger.info("자막 입력이 모두 소진되어 스케줄러를 종료합니다")
            return False

        self._queued = cue
        if cue.is_visible_at(now_ms):
            self._promote(now_ms)
        return True

    def late_promote(self, now_ms: int) -> None:
        """active가 없고 queued 구간이 열렸으면 승격합니다."""
        if (
            self._active is None
            and self._queued is not None
            and self._queued.is_visible_at(now_ms)
        ):
            self._promote(now_ms)

    def _promote(self, now_ms: int) -> None:
        """queued 큐를 active 슬롯으로 옮깁니다."""
        self._active, self._queued = self._queued, None
        logger.debug(f"자막 활성화: key={self._active.key}, now={now_ms}ms")
