"""
구조화 로깅 패키지

setup_logging / bind_clock / StructuredLogger를 외부에서 임포트하기 위한 패키지 초기화입니다.
"""

from subcast.logging.structured_logger import StructuredLogger, bind_clock, setup_logging

__all__ = ["StructuredLogger", "bind_clock", "setup_logging"]
