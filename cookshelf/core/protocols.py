"""领域协议定义

集中定义核心各部件之间的接口契约（Protocol）。
下载器只依赖 Location.download 的契约，锁文件只依赖 SpecFile 的查找能力，
使具体来源实现与 Cookfile 解析可以独立替换。
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from cookshelf.core.dep.dependency import Dependency
    from cookshelf.core.dep.models import CachedCookbook


# =========================================================================
# 来源协议
# =========================================================================

class Location(Protocol):
    """cookbook 来源协议

    download 成功返回 CachedCookbook，失败时抛出:
      - CookbookNotFound: 来源中不存在（级联搜索会尝试下一个来源）
      - CookbookValidationFailure: 产物校验失败
      - 其他异常: 来源故障
    """

    def download(self, storage_path: Path) -> CachedCookbook:
        ...


# =========================================================================
# 依赖声明文件协议
# =========================================================================

class SpecFile(Protocol):
    """依赖声明文件协议（Cookfile）

    锁文件路径由 filepath 派生，旧格式迁移时用 find 查询当前声明。
    """

    filepath: Path

    def find(self, name: str) -> Dependency | None:
        ...
