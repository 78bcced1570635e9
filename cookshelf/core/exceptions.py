"""统一异常体系

所有业务异常继承 CookshelfError。CLI 层据此输出友好提示，
下载器据此区分 "来源中不存在" 与 "来源故障" 两类失败。
"""

from __future__ import annotations


class CookshelfError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(CookshelfError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(CookshelfError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class DependencyError(CookshelfError):
    """cookbook 拉取失败（网络、权限等来源故障）"""

    code = "DEPENDENCY_ERROR"


class CookbookNotFound(DependencyError):
    """来源中不存在该 cookbook，或锁文件中没有该条目"""

    code = "COOKBOOK_NOT_FOUND"


class CookbookValidationFailure(DependencyError):
    """cookbook 产物校验失败，不重试、不吞掉"""

    code = "COOKBOOK_VALIDATION_FAILURE"


class GitError(DependencyError):
    """git clone / checkout 失败"""

    code = "GIT_ERROR"


class DuplicateLocationError(CookshelfError):
    """重复添加相同 (type, value) 的默认来源"""

    code = "DUPLICATE_LOCATION"


class LockfileParseError(CookshelfError):
    """锁文件既不是合法 JSON，也无法按旧格式解析"""

    code = "LOCKFILE_PARSE_ERROR"
