"""消息上报器

下载器和锁文件只通过 Reporter 输出单行告警 / 错误，
不直接依赖全局日志单例，测试可注入记录型实现捕获输出。
"""

from __future__ import annotations

import logging
from typing import Protocol


class Reporter(Protocol):
    """单行消息上报协议"""

    def warn(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class LoggingReporter:
    """转发到 logging.Logger 的默认实现"""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("cookshelf")

    def warn(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)
