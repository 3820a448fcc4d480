"""
프레임 컴포지터 모듈 패키지

공통 데이터 타입:
- RenderAction: 틱마다 컴포지터가 결정하는 렌더 동작
- RenderStats: 렌더링/출력 누적 통계
"""

from dataclasses import dataclass
from enum import Enum


class RenderAction(Enum):
    """
    한 틱에서 컴포지터가 수행하는 동작입니다.

    값:
        REDRAW: 새 큐를 캔버스에 다시 그림
        PRE_START_CLEAR: 같은 큐지만 시작 전이므로 빈 프레임으로 지움
        IDLE_CLEAR: 표시할 큐가 없어 캔버스를 지움
        NO_OP: 이전 프레임 버퍼를 그대로 재사용
    """
    REDRAW = "redraw"
    PRE_START_CLEAR = "pre_start_clear"
    IDLE_CLEAR = "idle_clear"
    NO_OP = "no_op"


@dataclass
class RenderStats:
    """
    렌더링 파이프라인 누적 통계입니다.

    필드:
        frames_emitted: 출력한 프레임 수 (= 실행한 틱 수)
        redraws: 큐를 새로 그린 횟수
        clears: 캔버스를 지운 횟수 (대기/유휴 모두 포함)
        readback_failures: 픽셀 읽기 실패 횟수
        skipped_lines: 건너뛴 잘못된 입력 줄 수
    """
    frames_emitted: int = 0
    redraws: int = 0
    clears: int = 0
    readback_failures: int = 0
    skipped_lines: int = 0
