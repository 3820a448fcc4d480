"""
자막 큐 파서 모듈입니다.

역할:
- 입력 한 줄(start<TAB>end<TAB>text)을 Cue로 변환
- text의 세 칸 공백("   ")을 줄바꿈으로 해석
- 잘못된 줄은 경고 로그를 남기고 건너뜀 (치명적 오류 아님)
- 입력 읽기 오류는 입력 종료로 처리

사용 예시:
    >>> parse_line("1000\\t3000\\tHELLO")
    Cue(start=1000, end=3000, lines=('HELLO',))
    >>> reader = CueReader(sys.stdin)
    >>> cue = next(reader, None)
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from subcast.subtitle import Cue

logger = logging.getLogger(__name__)

# 필드 구분자
FIELD_SEPARATOR = "\t"

# 자막 본문 안에서 줄을 나누는 구분자 (이스케이프 없음)
LINE_SEPARATOR = "   "

# 시각 필드의 최댓값 (부호 없는 64비트)
MAX_TIMESTAMP_MS = 2**64 - 1


def parse_line(line: str) -> Optional[Cue]:
    """
    입력 한 줄을 Cue로 파싱합니다.

    세 번째 필드 이후의 필드는 무시합니다.

    파라미터:
        line: 줄바꿈 문자가 제거된 입력 줄

    반환값:
        Optional[Cue]: 파싱된 큐. 필드가 3개 미만이거나 시각이
            음이 아닌 정수가 아니면 None
    """
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) < 3:
        return None

    start = _parse_timestamp(fields[0])
    end = _parse_timestamp(fields[1])
    if start is None or end is None:
        return None

    return Cue(start=start, end=end, lines=tuple(fields[2].split(LINE_SEPARATOR)))


def _parse_timestamp(field: str) -> Optional[int]:
    """
    부호 없는 64비트 밀리초 정수 필드를 변환합니다.

    앞의 '+' 하나는 허용합니다. ASCII 숫자 외의 문자(공백, '-', 소수점)가
    있거나 2**64 - 1을 넘으면 None을 반환합니다.
    """
    digits = field[1:] if field.startswith("+") else field
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None

    value = int(digits)
    if value > MAX_TIMESTAMP_MS:
        return None
    return value


class CueReader:
    """
    텍스트 줄 스트림에서 유효한 Cue만 순서대로 꺼내는 이터레이터입니다.

    잘못된 줄은 경고 로그 후 건너뛰고 다음 줄을 계속 읽습니다.
    읽기 오류(OSError, UnicodeDecodeError)가 발생하면 오류를 로깅하고
    입력이 끝난 것으로 처리합니다. 한 번 끝나면 다시 읽지 않습니다.
    """

    def __init__(self, lines: Iterable[str]) -> None:
        """
        CueReader를 초기화합니다.

        파라미터:
            lines: 입력 줄 이터러블 (파일 객체, 리스트 등)
        """
        self._lines: Iterator[str] = iter(lines)
        self._exhausted: bool = False

        # 건너뛴 잘못된 줄 수
        self.skipped_lines: int = 0

    @property
    def exhausted(self) -> bool:
        """입력이 끝났거나 읽기 오류로 중단되었으면 True를 반환합니다."""
        return self._exhausted

    def __iter__(self) -> CueReader:
        return self

    def __next__(self) -> Cue:
        while not self._exhausted:
            raw_line = self._read_line()
            if raw_line is None:
                break

            line = raw_line.rstrip("\r\n")
            cue = parse_line(line)
            if cue is None:
                self.skipped_lines += 1
                logger.warning(f"잘못된 자막 라인 건너뜀: {line!r}")
                continue

            logger.debug(f"자막 큐 수신: start={cue.start}ms, end={cue.end}ms")
            return cue

        raise StopIteration

    def _read_line(self) -> Optional[str]:
        """다음 줄을 읽습니다. 입력 종료 또는 읽기 오류 시 None을 반환합니다."""
        try:
            return next(self._lines)
        except StopIteration:
            logger.info("자막 입력 종료")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error(f"자막 입력 읽기 실패, 입력을 종료합니다: {exc}")

        self._exhausted = True
        return None
