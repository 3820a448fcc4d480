"""
subcast 설정 스키마 정의 모듈입니다.

역할:
- Pydantic v2 BaseModel 기반으로 설정 구조를 타입 안전하게 정의
- 각 섹션(system, video, subtitle, shadow)을 독립적인 중첩 모델로 분리
- 필드별 기본값, 허용 범위, 유효성 검증(validator)을 포함

사용 예시:
    >>> from subcast.config.schema import AppConfig
    >>> config = AppConfig(**yaml_data)
    >>> print(config.video.fps)
    25
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

# 모듈 로거 설정
logger = logging.getLogger(__name__)


# =============================================================================
# system 섹션: 시스템 전역 설정
# =============================================================================

class SystemConfig(BaseModel):
    """
    로깅 및 세션 설정을 정의하는 모델입니다.

    역할:
    - 로깅 레벨 및 포맷 지정
    - 로그 파일 디렉토리 지정 (비어 있으면 파일 로그 없음)
    - 세션 식별자 관리
    """
    # 로그 출력 레벨
    log_level: str = Field(default="INFO", description="로그 레벨 (DEBUG | INFO | WARNING | ERROR)")
    # 로그 출력 포맷
    log_format: str = Field(default="text", description="로그 포맷 (json | text)")
    # 로그 파일 저장 디렉토리 경로
    log_dir: str = Field(default="", description="로그 저장 디렉토리 (비어있으면 stderr만 사용)")
    # 세션 고유 식별자 (빈 문자열이면 UUID로 자동 생성)
    session_id: str = Field(default="", description="세션 ID (비어있으면 UUID 자동생성)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """로그 레벨이 유효한 Python 로깅 레벨인지 검증합니다."""
        allowed_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        # 대소문자 구분 없이 비교 후 대문자로 정규화
        upper_value = value.upper()
        if upper_value not in allowed_levels:
            error_message = f"log_level은 {allowed_levels} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """로그 포맷이 지원되는 형식인지 검증합니다."""
        allowed_formats = ("json", "text")
        if value not in allowed_formats:
            error_message = f"log_format은 {allowed_formats} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return value


# =============================================================================
# video 섹션: 출력 프레임 설정
# =============================================================================

class VideoConfig(BaseModel):
    """
    출력 프레임 스트림 설정입니다.

    역할:
    - 프레임레이트로 가상 시계의 프레임 간격 결정
    - 프레임 크기로 출력 버퍼 크기 결정 (width * height * 4 바이트)
    """
    # 초당 프레임 수
    fps: int = Field(default=25, description="프레임레이트")
    # 프레임 가로 픽셀 수
    width: int = Field(default=1920, description="프레임 가로 크기 (픽셀)")
    # 프레임 세로 픽셀 수
    height: int = Field(default=1080, description="프레임 세로 크기 (픽셀)")

    @field_validator("fps", "width", "height")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """프레임레이트와 크기가 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"양수여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# subtitle 섹션: 자막 텍스트 배치 설정
# =============================================================================

class FontConfig(BaseModel):
    """
    자막 폰트 설정입니다.

    역할:
    - 폰트 파일 경로 (필수, 비어 있으면 시작 시 오류)
    - 폰트 크기 지정
    """
    # 폰트 파일 경로
    path: str = Field(default="", description="폰트 파일 경로 (필수)")
    # 폰트 크기 (픽셀)
    size: float = Field(default=60.0, description="폰트 크기")

    @field_validator("size")
    @classmethod
    def validate_size(cls, value: float) -> float:
        """폰트 크기가 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"폰트 크기는 양수여야 합니다. 입력값: {value}")
        return value


class SubtitleConfig(BaseModel):
    """
    자막 텍스트 배치 설정을 정의하는 모델입니다.

    역할:
    - 가장 아래 줄의 베이스라인 위치 지정
    - 줄 높이 배율 지정 (폰트 줄 간격 × 배율)
    - 폰트 하위 설정 포함
    """
    # 가장 아래 줄이 놓이는 베이스라인 y 좌표 (픽셀)
    baseline: int = Field(default=1026, description="베이스라인 y 좌표 (픽셀)")
    # 줄 높이 배율
    line_height: float = Field(default=1.0, description="줄 높이 배율")
    # 폰트 설정
    font: FontConfig = Field(default_factory=FontConfig, description="폰트 설정")

    @field_validator("line_height")
    @classmethod
    def validate_line_height(cls, value: float) -> float:
        """줄 높이 배율이 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"line_height는 양수여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# shadow 섹션: 그림자 스타일 설정
# =============================================================================

class ShadowConfig(BaseModel):
    """
    자막 그림자 스타일 설정입니다.

    역할:
    - 그림자 방향(각도)과 거리로 오프셋 결정
    - 블러 반경과 불투명도 지정 (불투명도 0이면 그림자 생략)
    """
    # 그림자 방향 (도, 0=오른쪽, 90=아래쪽)
    angle: float = Field(default=45.0, description="그림자 각도 (도)")
    # 그림자 거리 (픽셀)
    distance: float = Field(default=0.0, description="그림자 거리 (픽셀)")
    # 그림자 블러 반경 (픽셀, 0이면 블러 없음)
    blur: float = Field(default=0.0, description="그림자 블러 반경 (픽셀)")
    # 그림자 불투명도 (0.0~1.0)
    opacity: float = Field(default=1.0, description="그림자 불투명도 (0.0~1.0)")

    @field_validator("distance", "blur")
    @classmethod
    def validate_non_negative(cls, value: float) -> float:
        """거리와 블러 반경이 음수가 아닌지 검증합니다."""
        if value < 0:
            raise ValueError(f"음수일 수 없습니다. 입력값: {value}")
        return value

    @field_validator("opacity")
    @classmethod
    def validate_opacity(cls, value: float) -> float:
        """불투명도가 0.0~1.0 범위인지 검증합니다."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"opacity는 0.0~1.0 범위여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# 최상위 AppConfig: 모든 섹션을 통합하는 루트 모델
# =============================================================================

class AppConfig(BaseModel):
    """
    애플리케이션 전체 설정을 통합하는 최상위 모델입니다.

    역할:
    - 설정 파일과 환경변수의 모든 섹션을 하나의 타입 안전한 객체로 통합
    - 각 섹션이 누락된 경우 기본값으로 자동 생성

    사용 예시:
        >>> config = AppConfig(**{"video": {"fps": 30}})
        >>> print(config.video.fps)
        30
        >>> print(config.subtitle.baseline)
        1026
    """
    # 시스템 전역 설정
    system: SystemConfig = Field(default_factory=SystemConfig, description="시스템 설정")
    # 출력 프레임 설정
    video: VideoConfig = Field(default_factory=VideoConfig, description="비디오 설정")
    # 자막 배치 설정
    subtitle: SubtitleConfig = Field(default_factory=SubtitleConfig, description="자막 설정")
    # 그림자 설정
    shadow: ShadowConfig = Field(default_factory=ShadowConfig, description="그림자 설정")
