"""cookshelf 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import os
from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING, Any

import click

from cookshelf import __version__
from cookshelf.core.config import DEFAULT_CONFIG_FILE, get_config, init_config
from cookshelf.core.exceptions import CookshelfError
from cookshelf.utils.logger import setup_logging

if TYPE_CHECKING:
    from cookshelf.core.installer import Installer


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """业务异常转为 click 友好提示"""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CookshelfError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


def _open_project(cookfile: str | None) -> Installer:
    """加载 Cookfile / 锁文件，构造下载器"""
    from cookshelf.core.cookfile import Cookfile
    from cookshelf.core.installer import Installer, build_downloader
    from cookshelf.core.lockfile import Lockfile
    from cookshelf.core.reporter import LoggingReporter

    cfg = get_config()
    reporter = LoggingReporter()
    cf = Cookfile(cookfile or cfg.cookfile)
    lockfile = Lockfile(cf, reporter=reporter)
    downloader = build_downloader(cfg, cf, reporter=reporter)
    return Installer(cf, downloader, lockfile, reporter=reporter)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path",
    default=lambda: os.getenv("COOKSHELF_CONFIG", DEFAULT_CONFIG_FILE),
    help="配置文件路径",
)
def main(config_path: str) -> None:
    """cookshelf - cookbook 依赖拉取与锁文件管理"""
    cfg = init_config(config_path)
    setup_logging(
        level=os.getenv("COOKSHELF_LOG_LEVEL", cfg.log_level),
        json_output=os.getenv("COOKSHELF_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from cookshelf.cli.cmd_install import register as _reg_install  # noqa: E402
from cookshelf.cli.cmd_lock import register as _reg_lock  # noqa: E402

_reg_install(main)
_reg_lock(main)
