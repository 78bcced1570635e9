"""Cookfile 依赖声明文件

YAML 格式:

    sources:
      - {type: site, value: "https://supermarket.chef.io/api/v1"}
      - {type: path, value: "vendor/cookbooks"}
    cookbooks:
      nginx: {constraint: "~> 2.7"}
      app: {path: "cookbooks/app"}

sha 为文件原始内容的 sha256，锁文件据此判断是否与声明同步。
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any

import yaml

from cookshelf.core.dep.dependency import Dependency
from cookshelf.core.dep.models import LocationDescriptor
from cookshelf.core.exceptions import ConfigError
from cookshelf.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "Cookfile.yml"


class Cookfile:
    """依赖声明文件"""

    def __init__(self, filepath: str | Path) -> None:
        self.filepath = Path(filepath).expanduser().resolve()
        if not self.filepath.is_file():
            raise ConfigError(f"Cookfile 不存在: {self.filepath}")
        try:
            data = load_yaml(self.filepath)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"Cookfile 解析失败: {self.filepath}: {e}") from e

        self.sha = hashlib.sha256(self.filepath.read_bytes()).hexdigest()
        self._sources = self._load_sources(data.get("sources") or [])
        self._dependencies: dict[str, Dependency] = {}
        cookbooks = data.get("cookbooks") or {}
        if not isinstance(cookbooks, dict):
            raise ConfigError(f"{self.filepath}: cookbooks 段必须是字典")
        for name, options in cookbooks.items():
            if options is not None and not isinstance(options, dict):
                raise ConfigError(f"{self.filepath}: cookbook '{name}' 的选项必须是字典")
            self._dependencies[str(name)] = Dependency(self, str(name), options)

        logger.info("已加载 %d 个 cookbook 声明: %s", len(self._dependencies), self.filepath)

    @classmethod
    def from_file(cls, path: str | Path = DEFAULT_FILENAME) -> Cookfile:
        return cls(path)

    def _load_sources(self, raw: Any) -> list[LocationDescriptor]:
        if not isinstance(raw, list):
            raise ConfigError(f"{self.filepath}: sources 段必须是列表")
        sources = []
        for item in raw:
            if not isinstance(item, dict) or "type" not in item or "value" not in item:
                raise ConfigError(f"{self.filepath}: 无效的来源定义 {item!r}")
            sources.append(LocationDescriptor.from_dict(item))
        return sources

    @property
    def base_dir(self) -> Path:
        return self.filepath.parent

    def sources(self) -> list[LocationDescriptor]:
        return list(self._sources)

    def dependencies(self) -> list[Dependency]:
        return list(self._dependencies.values())

    def find(self, name: str) -> Dependency | None:
        return self._dependencies.get(name)

    def has_dependency(self, name: str) -> bool:
        return name in self._dependencies

    def __repr__(self) -> str:
        return f"<Cookfile {self.filepath.name}>"
