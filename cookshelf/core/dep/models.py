"""cookbook 依赖数据模型

数据类:
- LocationDescriptor: 默认来源描述 (type, value, options)
- CachedCookbook: 已下载到本地的 cookbook 产物
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cookshelf.core.exceptions import CookbookValidationFailure

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
DEFAULT_CONSTRAINT = ">= 0.0.0"


@dataclass(frozen=True)
class LocationDescriptor:
    """一条已配置的来源，(type, value) 在来源表内唯一"""

    type: str
    value: str
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.value)

    def to_location_options(self) -> dict[str, Any]:
        """合并 options 与 {type: value}，用于构造临时来源实例"""
        return {**self.options, self.type: self.value}

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value, "options": dict(self.options)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocationDescriptor:
        return cls(
            type=str(data["type"]),
            value=str(data["value"]),
            options=dict(data.get("options") or {}),
        )


@dataclass
class CachedCookbook:
    """已落地的 cookbook，path 指向包含 metadata.json 的目录"""

    name: str
    version: str
    path: Path

    @classmethod
    def from_path(cls, path: Path) -> CachedCookbook:
        """从 cookbook 目录读取 metadata.json

        元数据缺失、不可解析或缺少 name/version 时抛出 CookbookValidationFailure。
        """
        metadata_file = path / METADATA_FILE
        if not metadata_file.is_file():
            raise CookbookValidationFailure(
                f"cookbook 目录缺少 {METADATA_FILE}: {path}"
            )
        try:
            data = json.loads(metadata_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CookbookValidationFailure(
                f"无法解析 {metadata_file}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise CookbookValidationFailure(f"{metadata_file} 内容不是 JSON 对象")

        name = data.get("name")
        version = data.get("version")
        if not isinstance(name, str) or not name:
            raise CookbookValidationFailure(f"{metadata_file} 缺少 name 字段")
        if not isinstance(version, str) or not version:
            raise CookbookValidationFailure(f"{metadata_file} 缺少 version 字段")
        return cls(name=name, version=version, path=path)

    def __str__(self) -> str:
        return f"{self.name} ({self.version})"
