"""安装流程

不做版本求解：按 Cookfile 逐个下载声明的 cookbook，
锁文件与 Cookfile 同步时沿用锁定版本，完成后整体刷新锁文件。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cookshelf.core.dep.dependency import Dependency
from cookshelf.core.dep.downloader import Downloader
from cookshelf.core.dep.store import CookbookStore
from cookshelf.core.exceptions import DuplicateLocationError
from cookshelf.core.reporter import LoggingReporter

if TYPE_CHECKING:
    from cookshelf.core.config import Config
    from cookshelf.core.cookfile import Cookfile
    from cookshelf.core.dep.models import CachedCookbook
    from cookshelf.core.lockfile import Lockfile
    from cookshelf.core.reporter import Reporter

logger = logging.getLogger(__name__)


def build_downloader(
    config: Config, cookfile: Cookfile, reporter: Reporter | None = None,
) -> Downloader:
    """Cookfile 中的来源优先，其后是全局配置的来源；重复项跳过"""
    downloader = Downloader(CookbookStore(config.cookbook_store), reporter=reporter)
    for loc in [*cookfile.sources(), *config.descriptors()]:
        try:
            downloader.add_location(loc.type, loc.value, loc.options)
        except DuplicateLocationError:
            logger.debug("跳过重复来源: %s=%s", loc.type, loc.value)
    return downloader


class Installer:
    """按 Cookfile 下载 cookbook 并刷新锁文件"""

    def __init__(
        self,
        cookfile: Cookfile,
        downloader: Downloader,
        lockfile: Lockfile,
        reporter: Reporter | None = None,
    ) -> None:
        self.cookfile = cookfile
        self.downloader = downloader
        self.lockfile = lockfile
        self.reporter = reporter or LoggingReporter()

    def install(self) -> list[tuple[Dependency, CachedCookbook]]:
        trusted = self._lock_trusted()
        if not trusted:
            logger.info("Cookfile 已变更，忽略锁定版本重新拉取")

        installed: list[tuple[Dependency, CachedCookbook]] = []
        for declared in self.cookfile.dependencies():
            dependency = self._with_locked_version(declared) if trusted else declared
            cached, location = self.downloader.download(dependency)
            logger.info("已安装: %s from %s", cached, location)
            installed.append((dependency, cached))

        self.lockfile.update(
            [dependency for dependency, _ in installed], sha=self.cookfile.sha,
        )
        return installed

    def update(self, names: list[str] | None = None) -> list[tuple[Dependency, CachedCookbook]]:
        """解除指定条目（默认全部）的锁定后重新安装"""
        targets = list(names) if names else [d.name for d in self.lockfile.dependencies()]
        for name in targets:
            self.lockfile.unlock(name)
        self.lockfile.save()
        return self.install()

    def _lock_trusted(self) -> bool:
        # sha 为空: 已同步，或刚从旧格式迁移
        return self.lockfile.sha is None or self.lockfile.sha == self.cookfile.sha

    def _with_locked_version(self, declared: Dependency) -> Dependency:
        locked = self.lockfile.find(declared)
        if locked is None or not locked.locked_version:
            return declared
        options = dict(declared.options)
        options["locked_version"] = locked.locked_version
        if declared.location is None:
            options["constraint"] = f"= {locked.locked_version}"
        elif "git" in declared.options and locked.options.get("ref"):
            # ref 优先于 branch / tag，检出锁定的提交
            options["ref"] = locked.options["ref"]
        return Dependency(self.cookfile, declared.name, options)
