"""cookbook 本地存储

目录布局: <storage_path>/<name>-<version>/
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from cookshelf.core.dep.models import CachedCookbook

logger = logging.getLogger(__name__)


class CookbookStore:
    """已下载 cookbook 的存储目录"""

    def __init__(self, storage_path: str | Path) -> None:
        self.storage_path = Path(storage_path).expanduser()
        self.storage_path.mkdir(parents=True, exist_ok=True)

    def cookbook_path(self, name: str, version: str) -> Path:
        return self.storage_path / f"{name}-{version}"

    def cookbook(self, name: str, version: str) -> CachedCookbook | None:
        """查找已存储的版本，不存在返回 None"""
        path = self.cookbook_path(name, version)
        if not path.is_dir():
            return None
        return CachedCookbook.from_path(path)

    def install(self, src: Path, name: str, version: str) -> CachedCookbook:
        """把 src 目录复制到存储中，已存在的同版本目录会被替换"""
        dest = self.cookbook_path(name, version)
        if dest.exists():
            shutil.rmtree(dest)
        shutil.copytree(src, dest, ignore=shutil.ignore_patterns(".git"))
        logger.info("已存储: %s@%s -> %s", name, version, dest)
        return CachedCookbook.from_path(dest)
