"""cookbook 依赖声明

Cookfile 中的新声明与锁文件中读回的条目走同一个构造入口，
options 在构造时统一归一化，保证两者行为一致。
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from cookshelf.core.dep.locations import GIT_OPTION_KEYS, LOCATION_TYPES, init_location
from cookshelf.core.dep.models import DEFAULT_CONSTRAINT, CachedCookbook
from cookshelf.core.exceptions import ValidationError

if TYPE_CHECKING:
    from cookshelf.core.protocols import Location, SpecFile

VALID_OPTIONS = frozenset(
    ("constraint", "locked_version", *LOCATION_TYPES, *GIT_OPTION_KEYS),
)

# 写入锁文件的字段，顺序即输出顺序
LOCKED_KEYS = ("locked_version", *LOCATION_TYPES, *GIT_OPTION_KEYS)


def normalize_options(name: str, options: dict[str, Any] | None) -> dict[str, Any]:
    """去掉 None 值，拒绝未知字段，值统一为字符串"""
    normalized: dict[str, Any] = {}
    unknown = []
    for key, value in (options or {}).items():
        key = str(key)
        if key not in VALID_OPTIONS:
            unknown.append(key)
            continue
        if value is None:
            continue
        normalized[key] = str(value)
    if unknown:
        raise ValidationError(
            f"Cookbook '{name}' 包含无效的选项: {', '.join(sorted(unknown))}",
            details=unknown,
        )
    return normalized


class Dependency:
    """单个 cookbook 依赖

    location 为 None 时由下载器在默认来源中级联搜索。
    """

    def __init__(
        self,
        cookfile: SpecFile | None,
        name: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        self.cookfile = cookfile
        self.name = name
        self.options = normalize_options(name, options)
        self.version_constraint: str = self.options.get("constraint", DEFAULT_CONSTRAINT)
        self.locked_version: str | None = self.options.get("locked_version")
        self.cached_cookbook: CachedCookbook | None = None
        self.location: Location | None = init_location(
            name, self.version_constraint, self.options, base_dir=self.base_dir,
        )

    @property
    def base_dir(self) -> Path | None:
        if self.cookfile is None:
            return None
        return Path(self.cookfile.filepath).parent

    @property
    def path(self) -> str | None:
        return self.options.get("path")

    @property
    def revision(self) -> str | None:
        """git 来源下载后实际检出的提交"""
        return getattr(self.location, "revision", None)

    def options_hash(self) -> dict[str, str]:
        """锁文件中保存的字段：锁定版本 + 来源字段

        git 来源下载成功后 ref 记录为检出的提交，重新安装时检出同一提交。
        """
        result: dict[str, str] = {}
        for key in LOCKED_KEYS:
            if key == "locked_version":
                version = self.cached_cookbook.version if self.cached_cookbook else self.locked_version
                if version:
                    result[key] = version
            elif key == "ref" and self.revision:
                result[key] = self.revision
            elif key in self.options:
                result[key] = self.options[key]
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return self.name == other.name and self.options_hash() == other.options_hash()

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return f"{self.name} ({self.locked_version or self.version_constraint})"

    def __repr__(self) -> str:
        return f"<Dependency {self.name} {self.options_hash()}>"
