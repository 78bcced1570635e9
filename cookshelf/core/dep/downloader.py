"""cookbook 下载器

依赖显式指定了来源时直接使用该来源，不做回退；
否则按默认来源表顺序级联搜索，首个成功即停止。

级联规则:
  - CookbookNotFound 表示 "此来源没有"，继续尝试下一个来源
  - 其他任何失败（含 CookbookValidationFailure）立即向上抛出，剩余来源不再尝试
  - 全部来源都没有时抛出 CookbookNotFound
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cookshelf.core.dep.locations import COMMUNITY_API, LOCATION_TYPES, init_location
from cookshelf.core.dep.models import CachedCookbook, LocationDescriptor
from cookshelf.core.dep.store import CookbookStore
from cookshelf.core.exceptions import (
    CookbookNotFound,
    CookbookValidationFailure,
    DuplicateLocationError,
    ValidationError,
)
from cookshelf.core.reporter import LoggingReporter

if TYPE_CHECKING:
    from cookshelf.core.dep.dependency import Dependency
    from cookshelf.core.protocols import Location
    from cookshelf.core.reporter import Reporter

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = LocationDescriptor(type="site", value=COMMUNITY_API)


class Downloader:
    """按来源优先级下载 cookbook"""

    def __init__(
        self,
        cookbook_store: CookbookStore,
        locations: list[LocationDescriptor] | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.cookbook_store = cookbook_store
        self.reporter = reporter or LoggingReporter()
        self._locations: list[LocationDescriptor] = []
        for loc in locations or []:
            self.add_location(loc.type, loc.value, loc.options)

    @property
    def storage_path(self) -> Path:
        return self.cookbook_store.storage_path

    def locations(self) -> list[LocationDescriptor]:
        """已配置的来源；一个都没配置时返回内置默认来源（替换而非合并）"""
        if self._locations:
            return list(self._locations)
        return [DEFAULT_LOCATION]

    def add_location(
        self, type: str, value: str, options: dict[str, Any] | None = None,
    ) -> None:
        """追加来源到表尾，(type, value) 已存在时抛出 DuplicateLocationError

        subject.add_location("path", "/srv/cookbooks")
        subject.add_location("site", "https://supermarket.example.com/api/v1")
        """
        if type not in LOCATION_TYPES:
            raise ValidationError(
                f"未知的来源类型 '{type}'，可用: {', '.join(LOCATION_TYPES)}"
            )
        if self.has_location(type, value):
            raise DuplicateLocationError(
                f"A default '{type}' location with the value '{value}' is already defined"
            )
        self._locations.append(
            LocationDescriptor(type=type, value=value, options=dict(options or {})),
        )

    def has_location(self, type: str, value: str) -> bool:
        return any(loc.key == (type, value) for loc in self._locations)

    def download(self, dependency: Dependency) -> tuple[CachedCookbook, Location]:
        """下载依赖，返回 (CachedCookbook, 实际使用的来源)"""
        if dependency.location is not None:
            location = dependency.location
            try:
                cached_cookbook = location.download(self.storage_path)
            except CookbookValidationFailure:
                raise
            except Exception:
                self.reporter.error(
                    f"Failed to download '{dependency.name}' from {location}"
                )
                raise
        else:
            cached_cookbook, location = self._search_locations(dependency)

        dependency.cached_cookbook = cached_cookbook
        return cached_cookbook, location

    def _search_locations(self, dependency: Dependency) -> tuple[CachedCookbook, Location]:
        for loc in self.locations():
            location = init_location(
                dependency.name,
                dependency.version_constraint,
                loc.to_location_options(),
                base_dir=dependency.base_dir,
            )
            if location is None:
                raise ValidationError(f"无法从来源 {loc.type}={loc.value} 构造实例")
            try:
                cached_cookbook = location.download(self.storage_path)
            except CookbookNotFound:
                logger.debug("%s 不在 %s 中，尝试下一个来源", dependency.name, location)
                continue
            logger.info("已拉取: %s -> %s (%s)", dependency.name, cached_cookbook.path, location)
            return cached_cookbook, location

        raise CookbookNotFound(
            f"Cookbook '{dependency.name}' not found in any of the default locations"
        )
