"""
저장소 모듈: 키-값 저장소 추상화와 샘플 JSON 변환

저장소는 JSON 값 하나를 키 하나에 저장하며 여러 키에 걸친 트랜잭션은 없습니다.
"""
from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from copy import deepcopy
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .data_models import RawScreenSample, RawStepSample

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """저장소 읽기/쓰기 실패"""


class KeyValueStore(ABC):
    """비동기 키-값 저장소 인터페이스"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """키에 저장된 JSON 값 (없으면 None)"""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """키에 JSON 값을 저장 (실패 시 PersistenceError)"""


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        try:
            # JSON으로 표현할 수 없는 값은 거부
            self._data[key] = json.loads(json.dumps(value))
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Value for {key} is not JSON serializable: {exc}") from exc


class JsonFileKeyValueStore(KeyValueStore):
    """
    키마다 JSON 파일 하나를 쓰는 저장소

    파일 입출력은 이벤트 루프를 막지 않도록 스레드에서 수행합니다.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def get(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)

    def _read(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc

    def _write(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # 임시 파일에 쓴 뒤 교체
            tmp_path = path.with_suffix(".json.tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc


def step_to_json(sample: RawStepSample) -> Dict[str, Any]:
    return {
        "timestamp": sample.timestamp.isoformat(),
        "count": sample.count,
        "source": sample.source,
        "activityType": sample.activity_type,
        "confidence": sample.confidence,
    }


def step_from_json(data: Dict[str, Any]) -> RawStepSample:
    return RawStepSample(
        timestamp=datetime.fromisoformat(data["timestamp"]),
        count=int(data["count"]),
        source=data.get("source", "device"),
        activity_type=data.get("activityType", "walking"),
        confidence=float(data.get("confidence", 1.0)),
    )


def screen_to_json(sample: RawScreenSample) -> Dict[str, Any]:
    return {
        "timestamp": sample.timestamp.isoformat(),
        "appName": sample.app_name,
        "duration": sample.duration_minutes,
        "category": sample.category,
        "isWellnessApp": sample.is_wellness_app,
    }


def screen_from_json(data: Dict[str, Any]) -> RawScreenSample:
    return RawScreenSample(
        timestamp=datetime.fromisoformat(data["timestamp"]),
        app_name=data["appName"],
        duration_minutes=float(data["duration"]),
        category=data.get("category", "other"),
        is_wellness_app=bool(data.get("isWellnessApp", False)),
    )
