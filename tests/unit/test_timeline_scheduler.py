"""
TimelineScheduler / VirtualClock 단위 테스트

검증 항목:
- 가상 시각 floor(f * 1000 / fps) 계산
- 만료 → 승격 → 보충 → 지연 승격 전이
- 표시 전 만료된 queued 큐 폐기
- 두 슬롯이 비었을 때만 입력을 읽는 단일 lookahead
- 입력 소진 시 종료 신호
"""

from __future__ import annotations

import pytest

from subcast.subtitle import Cue
from subcast.subtitle.timeline_scheduler import (
    SchedulerState,
    TimelineScheduler,
    VirtualClock,
)


# =============================================================================
# 테스트 헬퍼
# =============================================================================

def _cue(start: int, end: int, text: str = "X") -> Cue:
    return Cue(start=start, end=end, lines=(text,))


class _CountingSource:
    """읽은 횟수를 기록하는 큐 소스입니다."""

    def __init__(self, cues):
        self._cues = list(cues)
        self.reads = 0

    def __iter__(self):
        return self

    def __next__(self):
        self.reads += 1
        if not self._cues:
            raise StopIteration
        return self._cues.pop(0)


# =============================================================================
# VirtualClock 테스트
# =============================================================================

def test_clock_starts_at_zero():
    clock = VirtualClock(25)

    assert clock.frame_index == 0
    assert clock.now_ms == 0


def test_clock_advances_one_frame_per_tick():
    """fps=25에서 틱마다 40ms씩 전진하는지 확인합니다."""
    clock = VirtualClock(25)

    times = []
    for _ in range(4):
        times.append(clock.now_ms)
        clock.advance()

    assert times == [0, 40, 80, 120]
    assert clock.frame_index == 4


def test_clock_floors_fractional_frame_duration():
    """fps=30처럼 나누어떨어지지 않는 간격은 내림하는지 확인합니다."""
    clock = VirtualClock(30)
    times = []
    for _ in range(4):
        times.append(clock.now_ms)
        clock.advance()

    assert times == [0, 33, 66, 100]
    assert clock.frame_duration_ms == pytest.approx(33.333, abs=0.001)


@pytest.mark.parametrize("fps", [0, -1])
def test_clock_rejects_non_positive_fps(fps):
    with pytest.raises(ValueError):
        VirtualClock(fps)


# =============================================================================
# 상태 조회 테스트
# =============================================================================

def test_initial_state_is_idle():
    scheduler = TimelineScheduler([])

    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.active is None
    assert scheduler.queued is None


def test_state_reflects_slot_occupancy():
    scheduler = TimelineScheduler([])

    scheduler._queued = _cue(100, 200)
    assert scheduler.state is SchedulerState.QUEUED_ONLY

    scheduler._active = _cue(0, 100)
    assert scheduler.state is SchedulerState.ACTIVE_AND_QUEUED

    scheduler._queued = None
    assert scheduler.state is SchedulerState.ACTIVE


# =============================================================================
# 보충(refill) 테스트
# =============================================================================

def test_refill_queues_future_cue():
    """구간이 아직 열리지 않은 큐는 queued에 대기하는지 확인합니다."""
    scheduler = TimelineScheduler([_cue(1000, 2000)])

    assert scheduler.refill(0) is True

    assert scheduler.state is SchedulerState.QUEUED_ONLY
    assert scheduler.queued.key == (1000, 2000)


def test_refill_promotes_open_cue_immediately():
    """구간이 이미 열린 큐는 같은 틱에 active가 되는지 확인합니다."""
    scheduler = TimelineScheduler([_cue(0, 2000)])

    assert scheduler.refill(500) is True

    assert scheduler.state is SchedulerState.ACTIVE
    assert scheduler.active.key == (0, 2000)


def test_refill_returns_false_when_source_exhausted():
    scheduler = TimelineScheduler([])

    assert scheduler.refill(0) is False
    assert scheduler.refill(40) is False


def test_refill_does_nothing_when_slot_occupied():
    source = _CountingSource([_cue(0, 100), _cue(100, 200)])
    scheduler = TimelineScheduler(source)
    scheduler.refill(0)

    assert scheduler.refill(40) is True
    assert source.reads == 1


# =============================================================================
# 만료/승격 전이 테스트
# =============================================================================

def test_expire_active_at_end_boundary():
    """now == end에서 active가 제거되는지 확인합니다 (반열린 구간)."""
    scheduler = TimelineScheduler([])
    scheduler._active = _cue(0, 80)

    scheduler.expire_active(79)
    assert scheduler.active is not None

    scheduler.expire_active(80)
    assert scheduler.active is None


def test_promote_queued_waits_before_start():
    scheduler = TimelineScheduler([])
    scheduler._queued = _cue(100, 200)

    scheduler.promote_queued(99)

    assert scheduler.state is SchedulerState.QUEUED_ONLY


def test_promote_queued_at_start():
    scheduler = TimelineScheduler([])
    scheduler._queued = _cue(100, 200)

    scheduler.promote_queued(100)

    assert scheduler.state is SchedulerState.ACTIVE
    assert scheduler.active.key == (100, 200)


def test_promote_queued_drops_expired_cue():
    """한 번도 표시되지 않고 구간이 지난 queued 큐는 폐기되는지 확인합니다."""
    scheduler = TimelineScheduler([])
    scheduler._queued = _cue(100, 200)

    scheduler.promote_queued(200)

    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.dropped_cues == 1


def test_promote_queued_ignored_while_active():
    scheduler = TimelineScheduler([])
    scheduler._active = _cue(0, 500)
    scheduler._queued = _cue(100, 200)

    scheduler.promote_queued(150)

    assert scheduler.active.key == (0, 500)
    assert scheduler.queued.key == (100, 200)


def test_late_promote_opens_window():
    scheduler = TimelineScheduler([])
    scheduler._queued = _cue(100, 200)

    scheduler.late_promote(99)
    assert scheduler.active is None

    scheduler.late_promote(100)
    assert scheduler.active.key == (100, 200)
    assert scheduler.queued is None


def test_late_promote_skips_expired_cue():
    scheduler = TimelineScheduler([])
    scheduler._queued = _cue(100, 200)

    scheduler.late_promote(250)

    assert scheduler.active is None
    assert scheduler.queued is not None


# =============================================================================
# advance() 통합 테스트
# =============================================================================

def _run(scheduler: TimelineScheduler, fps: int = 25, max_ticks: int = 1000):
    """종료될 때까지 advance()를 호출하여 틱별 active 키를 반환합니다."""
    clock = VirtualClock(fps)
    timeline = []
    while len(timeline) < max_ticks and scheduler.advance(clock.now_ms):
        active = scheduler.active
        timeline.append((clock.now_ms, active.key if active else None))
        clock.advance()
    return timeline


def test_advance_cue_visible_exactly_in_window():
    """큐가 [start, end) 구간의 틱에서만 active인지 확인합니다."""
    timeline = _run(TimelineScheduler([_cue(1000, 3000)]))

    assert len(timeline) == 75  # 0ms ~ 2960ms
    for now_ms, key in timeline:
        if 1000 <= now_ms < 3000:
            assert key == (1000, 3000)
        else:
            assert key is None


def test_advance_back_to_back_cues_have_no_gap():
    """연속된 큐가 끝나는 틱에 다음 큐가 바로 활성화되는지 확인합니다."""
    timeline = dict(_run(TimelineScheduler([_cue(0, 80, "A"), _cue(80, 160, "B")])))

    assert timeline[40] == (0, 80)
    assert timeline[80] == (80, 160)
    assert timeline[120] == (80, 160)


def test_advance_never_activates_empty_window_cue():
    """end <= start인 큐는 한 번도 active가 되지 않는지 확인합니다."""
    scheduler = TimelineScheduler([_cue(200, 100), _cue(300, 400)])

    timeline = _run(scheduler)

    keys = {key for _, key in timeline}
    assert (200, 100) not in keys
    assert (300, 400) in keys
    assert scheduler.dropped_cues == 1


def test_advance_drops_cue_already_in_past():
    """이미 지나간 큐는 표시되지 않고 다음 큐로 넘어가는지 확인합니다."""
    scheduler = TimelineScheduler([_cue(0, 200, "A"), _cue(40, 120, "LATE"), _cue(400, 480, "C")])

    timeline = _run(scheduler)

    keys = {key for _, key in timeline}
    assert (40, 120) not in keys
    assert (400, 480) in keys


def test_advance_reads_input_only_when_both_slots_empty():
    """단일 lookahead: active가 있는 동안에는 입력을 읽지 않습니다."""
    source = _CountingSource([_cue(0, 400), _cue(400, 800)])
    scheduler = TimelineScheduler(source)

    scheduler.advance(0)
    scheduler.advance(40)
    scheduler.advance(360)

    assert source.reads == 1

    scheduler.advance(400)
    assert source.reads == 2
    assert scheduler.active.key == (400, 800)


def test_advance_never_holds_two_cues_ahead():
    scheduler = TimelineScheduler([_cue(1000, 2000), _cue(2000, 3000)])

    for now_ms in range(0, 3000, 40):
        scheduler.advance(now_ms)
        assert scheduler.state is not SchedulerState.ACTIVE_AND_QUEUED


def test_advance_returns_false_when_input_exhausted():
    scheduler = TimelineScheduler([])

    assert scheduler.advance(0) is False


def test_advance_continues_while_queued_cue_waits():
    scheduler = TimelineScheduler([_cue(5000, 6000)])

    assert scheduler.advance(0) is True
    assert scheduler.advance(40) is True
    assert scheduler.state is SchedulerState.QUEUED_ONLY
