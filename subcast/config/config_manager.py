"""
subcast 설정 관리 모듈입니다.

역할:
- (선택) YAML 설정 파일을 로드하고 Pydantic 스키마로 유효성 검증
- 환경변수 오버라이드 지원 (FPS, WIDTH, FONT_PATH 등)
- 필수 설정(폰트 경로) 누락 시 시작 전에 에러 발생

설정은 실행 시작 전에 한 번 확정되며 실행 중에는 바뀌지 않습니다.

사용 예시:
    >>> manager = ConfigManager()
    >>> config = manager.load("config.yaml")
    >>> config = manager.load(environ={"FONT_PATH": "/fonts/a.ttf", "FPS": "30"})
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import yaml
from pydantic import ValidationError

from subcast.config.schema import AppConfig

# 모듈 로거 설정
logger = logging.getLogger(__name__)

# 환경변수 이름 → (섹션 경로, 값 변환 함수)
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "FPS": (("video", "fps"), int),
    "WIDTH": (("video", "width"), int),
    "HEIGHT": (("video", "height"), int),
    "BASELINE": (("subtitle", "baseline"), int),
    "FONT_PATH": (("subtitle", "font", "path"), str),
    "FONT_SIZE": (("subtitle", "font", "size"), float),
    "LINE_HEIGHT": (("subtitle", "line_height"), float),
    "SHADOW_ANGLE": (("shadow", "angle"), float),
    "SHADOW_DISTANCE": (("shadow", "distance"), float),
    "SHADOW_BLUR": (("shadow", "blur"), float),
    "SHADOW_OPACITY": (("shadow", "opacity"), float),
    "LOG_LEVEL": (("system", "log_level"), str),
    "LOG_FORMAT": (("system", "log_format"), str),
    "LOG_DIR": (("system", "log_dir"), str),
}


class ConfigLoadError(Exception):
    """설정 파일 로드 중 발생하는 에러의 기본 클래스입니다."""
    pass


class ConfigValidationError(ConfigLoadError):
    """설정 스키마 검증 또는 필수값 확인 실패 시 발생하는 에러입니다."""
    pass


class ConfigFileNotFoundError(ConfigLoadError):
    """설정 파일을 찾을 수 없을 때 발생하는 에러입니다."""
    pass


class ConfigManager:
    """
    설정 파일과 환경변수를 합쳐 AppConfig를 만드는 매니저 클래스입니다.

    역할:
    - YAML 파일 파싱 (파일은 선택)
    - 환경변수 오버라이드 (해석할 수 없는 값은 경고 후 무시)
    - Pydantic 유효성 검증
    - 필수 설정 확인

    사용 예시:
        >>> manager = ConfigManager()
        >>> config = manager.load()
        >>> print(config.video.fps)
        25
    """

    def __init__(self) -> None:
        """ConfigManager를 초기화합니다."""
        # 현재 활성 설정 객체 (로드 전에는 None)
        self._config: Optional[AppConfig] = None
        logger.debug("ConfigManager 인스턴스 생성 완료")

    @property
    def config(self) -> Optional[AppConfig]:
        """마지막으로 로드한 설정 객체를 반환합니다."""
        return self._config

    def load(
        self,
        filepath: str | Path | None = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> AppConfig:
        """
        설정을 로드하고 검증합니다.

        처리 순서:
        1. 설정 파일 파싱 (filepath가 None이면 빈 설정에서 시작)
        2. 환경변수 오버라이드 적용
        3. Pydantic 스키마 검증
        4. 필수 설정 확인

        파라미터:
            filepath (str | Path | None): YAML 설정 파일 경로
            environ (Optional[Mapping[str, str]]): 환경변수 (None이면 os.environ)

        반환값:
            AppConfig: 검증 완료된 설정 객체

        에러:
            ConfigFileNotFoundError: 파일이 존재하지 않을 때
            ConfigValidationError: 스키마 검증 실패 또는 필수값 누락 시
            ConfigLoadError: YAML 파싱 실패 등 기타 에러
        """
        raw_config: dict = {}

        # 1단계: 설정 파일 파싱
        if filepath is not None:
            filepath = Path(filepath)
            logger.info(f"설정 파일 로드 시작: {filepath}")
            if not filepath.exists():
                error_message = f"설정 파일을 찾을 수 없습니다: {filepath}"
                logger.error(error_message)
                raise ConfigFileNotFoundError(error_message)
            raw_config = self._parse_yaml_file(filepath)

        # 2단계: 환경변수 오버라이드 적용
        raw_config = self._apply_env_overrides(
            raw_config, os.environ if environ is None else environ
        )

        # 3단계: Pydantic 스키마 검증
        validated_config = self._validate_config(raw_config)

        # 4단계: 필수 설정 확인
        if not validated_config.subtitle.font.path:
            error_message = (
                "폰트 파일 경로가 필요합니다. "
                "FONT_PATH 환경변수 또는 subtitle.font.path를 설정하세요."
            )
            logger.error(error_message)
            raise ConfigValidationError(error_message)

        self._config = validated_config
        logger.info(
            f"설정 로드 성공: "
            f"fps={validated_config.video.fps}, "
            f"size={validated_config.video.width}x{validated_config.video.height}, "
            f"font={validated_config.subtitle.font.path}"
        )
        return validated_config

    # =========================================================================
    # 내부 메서드 (private)
    # =========================================================================

    def _parse_yaml_file(self, filepath: Path) -> dict:
        """
        YAML 파일을 읽어서 딕셔너리로 파싱합니다.

        파라미터:
            filepath (Path): YAML 파일 경로

        반환값:
            dict: 파싱된 설정 딕셔너리

        에러:
            ConfigLoadError: 파일 읽기 또는 파싱 실패 시
        """
        try:
            with open(filepath, "r", encoding="utf-8") as config_file:
                raw_data = yaml.safe_load(config_file)

        except yaml.YAMLError as yaml_error:
            error_message = f"YAML 파싱 에러: {yaml_error}"
            logger.error(error_message)
            raise ConfigLoadError(error_message) from yaml_error

        except OSError as file_error:
            error_message = f"파일 읽기 에러: {file_error}"
            logger.error(error_message)
            raise ConfigLoadError(error_message) from file_error

        # YAML 파일이 비어있으면 빈 딕셔너리
        if raw_data is None:
            logger.warning(f"설정 파일이 비어있습니다: {filepath}")
            return {}

        if not isinstance(raw_data, dict):
            error_message = f"설정 파일의 최상위 구조가 딕셔너리가 아닙니다: {type(raw_data)}"
            logger.error(error_message)
            raise ConfigLoadError(error_message)

        return raw_data

    def _apply_env_overrides(
        self,
        raw_config: dict,
        environ: Mapping[str, str],
    ) -> dict:
        """
        환경변수로 설정값을 오버라이드합니다.

        매핑은 ENV_OVERRIDES 표를 따릅니다 (예: FPS -> video.fps).
        값을 필드 타입으로 변환할 수 없으면 경고 로그를 남기고
        기존 값(파일 설정 또는 기본값)을 유지합니다.

        파라미터:
            raw_config (dict): 환경변수 적용 전 설정 딕셔너리
            environ (Mapping[str, str]): 환경변수

        반환값:
            dict: 환경변수가 적용된 설정 딕셔너리
        """
        override_count = 0

        for env_key, (path, convert) in ENV_OVERRIDES.items():
            env_value = environ.get(env_key)
            if env_value is None:
                continue

            try:
                converted_value = convert(env_value)
            except ValueError:
                logger.warning(
                    f"환경변수 '{env_key}' 값을 해석할 수 없어 무시합니다: '{env_value}'"
                )
                continue

            # 중간 섹션이 없으면 새로 생성
            section = raw_config
            for part in path[:-1]:
                if not isinstance(section.get(part), dict):
                    section[part] = {}
                section = section[part]
            section[path[-1]] = converted_value

            logger.info(
                f"환경변수 오버라이드: {env_key} -> {'.'.join(path)} = {converted_value}"
            )
            override_count += 1

        if override_count > 0:
            logger.info(f"환경변수 오버라이드 적용 완료: {override_count}건")

        return raw_config

    def _validate_config(self, raw_config: dict) -> AppConfig:
        """
        딕셔너리를 Pydantic AppConfig 모델로 검증하고 변환합니다.

        파라미터:
            raw_config (dict): 검증할 설정 딕셔너리

        반환값:
            AppConfig: 검증 완료된 설정 객체

        에러:
            ConfigValidationError: Pydantic 검증 실패 시
        """
        try:
            return AppConfig(**raw_config)

        except ValidationError as validation_error:
            # 검증 에러 상세 내용을 로그에 기록
            error_details = validation_error.errors()
            for error_detail in error_details:
                field_path = " -> ".join(str(loc) for loc in error_detail["loc"])
                logger.error(
                    f"설정 검증 실패 - 필드: {field_path}, "
                    f"에러: {error_detail['msg']}, "
                    f"입력값: {error_detail.get('input', 'N/A')}"
                )

            error_message = f"설정 스키마 검증 실패: {len(error_details)}개 에러 발생"
            raise ConfigValidationError(error_message) from validation_error
