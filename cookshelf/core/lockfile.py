"""锁文件

记录最近一次解析得到的 cookbook 版本集合，保证多台机器重复安装得到相同版本。

文件位于 <Cookfile 路径>.lock，内容为带缩进的 JSON 对象:

    {
      "sha": "<Cookfile 内容 sha256，null 表示已同步>",
      "sources": {
        "nginx": {"locked_version": "2.7.6"},
        "app": {"locked_version": "0.1.0", "path": "cookbooks/app"}
      }
    }

非 JSON 内容若符合旧格式特征，会先经 LockfileLegacy 转换再加载。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cookshelf.core.dep.dependency import Dependency
from cookshelf.core.exceptions import CookbookNotFound, LockfileParseError
from cookshelf.core.lockfile_legacy import LockfileLegacy, is_legacy
from cookshelf.core.reporter import LoggingReporter
from cookshelf.utils.yaml_io import atomic_write

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cookshelf.core.protocols import SpecFile
    from cookshelf.core.reporter import Reporter

logger = logging.getLogger(__name__)

LEGACY_WARNING = "You are using the old lockfile format. Attempting to convert..."


class Lockfile:
    """锁文件对象

    构造时若锁文件已存在则自动加载。dependencies 以 cookbook 名为键，
    同名条目后写覆盖先写。除 update 外的修改只作用于内存，由调用方决定何时 save。
    """

    def __init__(self, cookfile: SpecFile, reporter: Reporter | None = None) -> None:
        self.cookfile = cookfile
        self.reporter = reporter or LoggingReporter()
        self.filepath = Path(f"{cookfile.filepath}.lock").expanduser().resolve()
        self.sha: str | None = None
        self._dependencies: dict[str, Dependency] = {}

        if self.filepath.exists():
            self.load()

    def load(self) -> None:
        """从磁盘加载锁文件"""
        contents = self.filepath.read_text(encoding="utf-8")
        data = self._parse(contents)

        self.sha = data.get("sha")
        sources = data.get("sources") or {}
        if not isinstance(sources, dict):
            raise LockfileParseError(f"{self.filepath}: sources 必须是 JSON 对象")
        for name, options in sources.items():
            if options is not None and not isinstance(options, dict):
                raise LockfileParseError(
                    f"{self.filepath}: cookbook '{name}' 的选项必须是 JSON 对象"
                )
            self.add(Dependency(self.cookfile, str(name), options))
        logger.debug("锁文件已加载: %s (%d 个条目)", self.filepath, len(self._dependencies))

    def _parse(self, contents: str) -> dict[str, Any]:
        try:
            data = json.loads(contents)
            if not isinstance(data, dict):
                raise json.JSONDecodeError("锁文件内容不是 JSON 对象", contents, 0)
        except json.JSONDecodeError as exc:
            if not is_legacy(contents):
                raise LockfileParseError(f"锁文件解析失败: {self.filepath}: {exc}") from exc
            self.reporter.warn(LEGACY_WARNING)
            return LockfileLegacy.parse(self.cookfile, contents)
        return data

    def reset_sha(self) -> None:
        """sha 置空，表示锁文件与 Cookfile 已同步；不写盘"""
        self.sha = None

    def dependencies(self) -> list[Dependency]:
        return list(self._dependencies.values())

    def find(self, dependency: str | Dependency) -> Dependency | None:
        """按名称或依赖对象查找条目"""
        return self._dependencies.get(self._cookbook_name(dependency))

    def has_dependency(self, dependency: str | Dependency) -> bool:
        return self.find(dependency) is not None

    def update(self, dependencies: Iterable[Dependency], sha: str | None = None) -> None:
        """整体替换条目和 sha，并立即写盘"""
        self._dependencies = {}
        self.sha = sha
        for dependency in dependencies:
            self.append(dependency)
        self.save()

    def add(self, dependency: Dependency) -> None:
        self._dependencies[self._cookbook_name(dependency)] = dependency

    append = add

    def remove(self, dependency: str | Dependency) -> None:
        """移除条目，不存在时抛出 CookbookNotFound"""
        name = self._cookbook_name(dependency)
        if name not in self._dependencies:
            raise CookbookNotFound(f"'{name}' does not exist in this lockfile!")
        del self._dependencies[name]

    unlock = remove

    def to_dict(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "sources": {
                name: dependency.options_hash()
                for name, dependency in self._dependencies.items()
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def save(self) -> None:
        """原子写入锁文件（临时文件 + rename）"""
        atomic_write(self.filepath, self.to_json() + "\n")
        logger.info("锁文件已保存: %s", self.filepath)

    @staticmethod
    def _cookbook_name(dependency: str | Dependency) -> str:
        if isinstance(dependency, str):
            return dependency
        return str(dependency.name)

    def __str__(self) -> str:
        return f"#<Lockfile {self.filepath.name}>"

    def __repr__(self) -> str:
        return f"#<Lockfile {self.filepath.name}, dependencies: {self.dependencies()!r}>"
