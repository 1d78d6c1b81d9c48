"""
설정 모듈: 수집 서비스와 신호 집계에 쓰이는 조정 가능한 값들

사용 방식:
    from vita_engine.config import load_config
    config = load_config()
    config.batch_size
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# 환경 변수 이름 -> 설정 필드
ENV_OVERRIDES = {
    "VITA_BATCH_SIZE": "batch_size",
    "VITA_SYNC_INTERVAL_SECONDS": "sync_interval_seconds",
    "VITA_CLEANUP_INTERVAL_SECONDS": "cleanup_interval_seconds",
    "VITA_RETENTION_DAYS": "retention_days",
    "VITA_STEP_GOAL": "step_goal",
    "VITA_BUFFER_MAX_SAMPLES": "buffer_max_samples",
    "VITA_STORAGE_KEY": "storage_key",
}


@dataclass(frozen=True)
class EngineConfig:
    """
    엔진 런타임 설정

    기본값은 모바일 앱의 수집 주기를 그대로 따릅니다.
    """

    # 배치가 이 크기에 도달하면 즉시 저장
    batch_size: int = 100

    # 주기적 저장 간격 (5분)
    sync_interval_seconds: float = 300.0

    # 오래된 데이터 정리 간격 (하루)
    cleanup_interval_seconds: float = 86400.0

    # 저장소와 메모리 버퍼의 보관 기간
    retention_days: int = 90

    step_goal: int = 10000

    # 메모리 버퍼 최대 샘플 수 (종류별)
    buffer_max_samples: int = 50000

    storage_key: str = "vita_navigator_activity_data"

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.sync_interval_seconds <= 0:
            raise ValueError(f"sync_interval_seconds must be positive, got {self.sync_interval_seconds}")
        if self.cleanup_interval_seconds <= 0:
            raise ValueError(
                f"cleanup_interval_seconds must be positive, got {self.cleanup_interval_seconds}"
            )
        if self.retention_days <= 0:
            raise ValueError(f"retention_days must be positive, got {self.retention_days}")
        if self.step_goal <= 0:
            raise ValueError(f"step_goal must be positive, got {self.step_goal}")
        if self.buffer_max_samples <= 0:
            raise ValueError(f"buffer_max_samples must be positive, got {self.buffer_max_samples}")
        if not self.storage_key:
            raise ValueError("storage_key must not be empty")


def load_config(environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    기본 설정에 VITA_* 환경 변수 값을 덮어써 설정을 만드는 함수

    해석할 수 없는 값은 경고를 남기고 무시합니다.

    Args:
        environ: 환경 변수 매핑 (None이면 os.environ)

    Returns:
        검증된 EngineConfig
    """
    environ = os.environ if environ is None else environ
    types = {item.name: item.type for item in fields(EngineConfig)}
    defaults = EngineConfig()
    overrides = {}

    for env_name, field_name in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        field_type = types[field_name]
        try:
            if field_type in ("int", int):
                overrides[field_name] = int(raw)
            elif field_type in ("float", float):
                overrides[field_name] = float(raw)
            else:
                overrides[field_name] = raw
        except ValueError:
            logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")

    return replace(defaults, **overrides)
