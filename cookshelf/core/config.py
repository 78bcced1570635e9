"""集中配置管理

支持从 YAML 文件加载 + 编程式覆盖。

    cookfile: Cookfile.yml
    cookbook_store: ~/.cookshelf/cookbooks
    locations:
      - {type: site, value: "https://supermarket.chef.io/api/v1"}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cookshelf.core.dep.models import LocationDescriptor
from cookshelf.core.exceptions import ConfigError
from cookshelf.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "~/.cookshelf/config.yml"


@dataclass
class Config:
    """全局配置"""

    cookfile: str = "Cookfile.yml"
    cookbook_store: str = "~/.cookshelf/cookbooks"
    log_level: str = "INFO"

    # 默认来源，按优先级排列；为空时使用内置社区站点
    locations: list[dict[str, Any]] = field(default_factory=list)

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(Path(path).expanduser())
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        cfg.descriptors()
        return cfg

    def descriptors(self) -> list[LocationDescriptor]:
        """将 locations 转为 LocationDescriptor 列表"""
        if not isinstance(self.locations, list):
            raise ConfigError("locations 必须是列表")
        result = []
        for item in self.locations:
            if not isinstance(item, dict) or "type" not in item or "value" not in item:
                raise ConfigError(f"无效的来源定义: {item!r}")
            result.append(LocationDescriptor.from_dict(item))
        return result


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
