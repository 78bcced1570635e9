"""cookbook 依赖拉取

- models.py: 数据模型（来源描述、已下载产物）
- store.py: 本地存储目录
- locations.py: path / git / site 来源
- dependency.py: 依赖声明
- downloader.py: 显式来源直连 + 默认来源级联搜索
"""

from cookshelf.core.dep.dependency import Dependency
from cookshelf.core.dep.downloader import DEFAULT_LOCATION, Downloader
from cookshelf.core.dep.locations import init_location
from cookshelf.core.dep.models import CachedCookbook, LocationDescriptor
from cookshelf.core.dep.store import CookbookStore

__all__ = [
    "DEFAULT_LOCATION",
    "CachedCookbook",
    "CookbookStore",
    "Dependency",
    "Downloader",
    "LocationDescriptor",
    "init_location",
]
