"""cookbook 来源实现

职责:
- path: 本地目录（不复制到存储）
- git:  git clone 后复制到存储
- site: 社区站点 API 下载 tar 包并解压到存储

所有来源遵循同一失败约定:
  CookbookNotFound          → 来源中不存在，级联搜索继续尝试下一个来源
  CookbookValidationFailure → 产物无效
  其他 DependencyError      → 来源故障
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
import tarfile
import tempfile
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from cookshelf.core.dep.models import METADATA_FILE, CachedCookbook
from cookshelf.core.dep.store import CookbookStore
from cookshelf.core.exceptions import (
    CookbookNotFound,
    CookbookValidationFailure,
    DependencyError,
    GitError,
)
from cookshelf.utils.net import validate_url_scheme

logger = logging.getLogger(__name__)

COMMUNITY_API = "https://supermarket.chef.io/api/v1"
SITE_ALIASES = {"opscode": COMMUNITY_API, "supermarket": COMMUNITY_API}
HTTP_TIMEOUT = 60

_EXACT_VERSION_RE = re.compile(r"^(?:=\s*)?(\d+(?:\.\d+){0,2})$")


class BaseLocation(ABC):
    """来源基类"""

    type: str = ""

    def __init__(
        self,
        name: str,
        version_constraint: str,
        options: dict[str, Any],
        base_dir: Path | None = None,
    ) -> None:
        self.name = name
        self.version_constraint = version_constraint
        self.options = dict(options)
        self.base_dir = base_dir

    @abstractmethod
    def download(self, storage_path: Path) -> CachedCookbook:
        """拉取 cookbook 到 storage_path，返回 CachedCookbook"""

    def validate_cached(self, cookbook: CachedCookbook) -> CachedCookbook:
        if cookbook.name != self.name:
            raise CookbookValidationFailure(
                f"cookbook 名称不匹配: 期望 '{self.name}'，"
                f"{cookbook.path} 中为 '{cookbook.name}'"
            )
        return cookbook

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"


class PathLocation(BaseLocation):
    """本地目录来源

    path 本身是 cookbook 目录（含 metadata.json），
    或是存放多个 cookbook 的仓库目录（path/<name>/）。
    """

    type = "path"

    @property
    def path(self) -> Path:
        p = Path(str(self.options["path"])).expanduser()
        if not p.is_absolute() and self.base_dir is not None:
            p = self.base_dir / p
        return p

    def download(self, storage_path: Path) -> CachedCookbook:
        path = self.path
        if path.is_dir() and not (path / METADATA_FILE).exists():
            path = path / self.name
        if not path.is_dir():
            raise CookbookNotFound(f"Cookbook '{self.name}' 不存在于路径: {self.path}")
        cookbook = self.validate_cached(CachedCookbook.from_path(path))
        logger.info("本地路径命中: %s -> %s", self.name, path)
        return cookbook

    def __str__(self) -> str:
        return f"source at {self.options['path']}"


class GitLocation(BaseLocation):
    """Git 仓库来源"""

    type = "git"

    # 最近一次 download 实际检出的提交
    revision: str | None = None

    @property
    def uri(self) -> str:
        return str(self.options["git"])

    @property
    def ref(self) -> str:
        for key in ("ref", "branch", "tag"):
            if self.options.get(key):
                return str(self.options[key])
        return ""

    def download(self, storage_path: Path) -> CachedCookbook:
        store = CookbookStore(storage_path)
        with tempfile.TemporaryDirectory(prefix="cookshelf-git-") as tmp:
            clone_dir = Path(tmp) / self.name
            logger.info("git clone: %s", self.uri)
            self._git(["clone", self.uri, str(clone_dir)])
            if self.ref:
                self._git(["checkout", self.ref], cwd=clone_dir)
            revision = self._git(["rev-parse", "HEAD"], cwd=clone_dir).strip()

            src = clone_dir / str(self.options["rel"]) if self.options.get("rel") else clone_dir
            if not src.is_dir():
                raise CookbookNotFound(
                    f"Cookbook '{self.name}' 不存在于 {self.uri} 的 {self.options.get('rel')}"
                )
            cookbook = self.validate_cached(CachedCookbook.from_path(src))
            installed = store.install(src, cookbook.name, cookbook.version)
        self.revision = revision or None
        logger.info("git 检出: %s @ %s", self.name, self.revision)
        return installed

    @staticmethod
    def _git(args: list[str], cwd: Path | None = None) -> str:
        try:
            r = subprocess.run(
                ["git", *args],
                cwd=str(cwd) if cwd else None,
                capture_output=True, text=True, check=False,
            )
        except OSError as e:
            raise GitError(f"无法执行 git {args[0]}: {e}") from e
        if r.returncode != 0:
            raise GitError(
                f"git {args[0]} 失败 (rc={r.returncode}): {r.stderr[:300]}"
            )
        return r.stdout

    def __str__(self) -> str:
        ref = f" at {self.ref}" if self.ref else ""
        return f"git: '{self.uri}'{ref}"


class SiteLocation(BaseLocation):
    """社区站点 API 来源"""

    type = "site"

    @property
    def api_uri(self) -> str:
        value = str(self.options["site"]).lstrip(":")
        return SITE_ALIASES.get(value, value).rstrip("/")

    def target_version(self) -> str:
        """锁定版本或精确约束给出的版本，否则为空（取最新版本）"""
        locked = self.options.get("locked_version")
        if locked:
            return str(locked)
        m = _EXACT_VERSION_RE.match(self.version_constraint.strip())
        return m.group(1) if m else ""

    def download(self, storage_path: Path) -> CachedCookbook:
        store = CookbookStore(storage_path)
        version = self.target_version()
        if version:
            cached = store.cookbook(self.name, version)
            if cached is not None:
                logger.info("  缓存命中: %s", cached.path)
                return self.validate_cached(cached)

        quoted = urllib.parse.quote(self.name)
        info = self._get_json(f"{self.api_uri}/cookbooks/{quoted}")
        if not version:
            latest = str(info.get("latest_version") or "")
            version = latest.rstrip("/").rsplit("/", 1)[-1]
            if not version:
                raise CookbookNotFound(f"Cookbook '{self.name}' 在 {self.api_uri} 上没有可用版本")
            cached = store.cookbook(self.name, version)
            if cached is not None:
                logger.info("  缓存命中: %s", cached.path)
                return self.validate_cached(cached)

        version_info = self._get_json(
            f"{self.api_uri}/cookbooks/{quoted}/versions/{version}",
        )
        file_url = version_info.get("file")
        if not file_url:
            raise DependencyError(f"{self.api_uri} 未返回 {self.name}@{version} 的下载地址")

        with tempfile.TemporaryDirectory(prefix="cookshelf-site-") as tmp:
            archive = Path(tmp) / f"{self.name}-{version}.tar.gz"
            self._fetch(str(file_url), archive)
            extract_dir = Path(tmp) / "extract"
            try:
                with tarfile.open(archive) as tf:
                    tf.extractall(path=str(extract_dir), filter="data")  # noqa: S202
            except (OSError, tarfile.TarError) as e:
                raise CookbookValidationFailure(f"无法解压 {file_url}: {e}") from e

            src = extract_dir / self.name
            if not src.is_dir():
                entries = [d for d in extract_dir.iterdir() if d.is_dir()]
                if len(entries) != 1:
                    raise CookbookValidationFailure(
                        f"{file_url} 中找不到 cookbook 目录 '{self.name}'"
                    )
                src = entries[0]
            cookbook = self.validate_cached(CachedCookbook.from_path(src))
            return store.install(src, cookbook.name, cookbook.version)

    def _get_json(self, url: str) -> dict[str, Any]:
        validate_url_scheme(url, context=f"site {self.name}")
        try:
            with urllib.request.urlopen(url, timeout=HTTP_TIMEOUT) as resp:  # nosec B310
                payload = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise CookbookNotFound(
                    f"Cookbook '{self.name}' 不存在于 {self.api_uri}"
                ) from e
            raise DependencyError(f"请求失败: {url} - HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise DependencyError(f"请求失败: {url} - {e}") from e
        except json.JSONDecodeError as e:
            raise DependencyError(f"响应不是合法 JSON: {url}") from e
        if not isinstance(payload, dict):
            raise DependencyError(f"响应不是 JSON 对象: {url}")
        return payload

    def _fetch(self, url: str, dest: Path) -> None:
        validate_url_scheme(url, context=f"site {self.name}")
        logger.info("  下载: %s", url)
        try:
            urllib.request.urlretrieve(url, str(dest))  # nosec B310
        except urllib.error.HTTPError as e:
            dest.unlink(missing_ok=True)
            if e.code == 404:
                raise CookbookNotFound(f"下载地址不存在: {url}") from e
            raise DependencyError(f"下载失败: {url} - HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            dest.unlink(missing_ok=True)
            raise DependencyError(f"下载失败: {url} - {e}") from e

    def __str__(self) -> str:
        return f"site: '{self.api_uri}'"


LOCATION_TYPES: dict[str, type[BaseLocation]] = {
    "path": PathLocation,
    "git": GitLocation,
    "site": SiteLocation,
}

# 仅对 git 来源有意义的附加字段
GIT_OPTION_KEYS = ("ref", "branch", "tag", "rel")


def init_location(
    name: str,
    version_constraint: str,
    options: dict[str, Any],
    base_dir: Path | None = None,
) -> BaseLocation | None:
    """按 options 中出现的第一个来源字段构造来源实例，无来源字段返回 None"""
    for key, cls in LOCATION_TYPES.items():
        if options.get(key) is not None:
            return cls(name, version_constraint, options, base_dir=base_dir)
    return None
