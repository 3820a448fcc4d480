"""
자막 모듈 패키지

공통 데이터 타입:
- Cue: 시간 구간이 지정된 자막 단위
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Cue:
    """
    자막 큐 데이터 컨테이너입니다. 파싱 후에는 변경되지 않습니다.

    표시 구간은 [start, end) 반열린 구간이며, end <= start인 큐는
    어느 시각에도 표시되지 않습니다.

    필드:
        start: 표시 시작 시각 (밀리초)
        end: 표시 종료 시각 (밀리초, 미포함)
        lines: 위에서 아래 순서의 텍스트 줄 목록
    """
    start: int
    end: int
    lines: tuple[str, ...]

    @property
    def key(self) -> tuple[int, int]:
        """렌더 캐시 키 (start, end)를 반환합니다."""
        return (self.start, self.end)

    def is_visible_at(self, now_ms: int) -> bool:
        """now_ms가 표시 구간 안에 있으면 True를 반환합니다."""
        return self.start <= now_ms < self.end

    def has_expired_at(self, now_ms: int) -> bool:
        """now_ms가 종료 시각 이후이면 True를 반환합니다."""
        return now_ms >= self.end
