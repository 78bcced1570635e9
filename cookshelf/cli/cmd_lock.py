"""CLI: 锁文件管理命令"""

from __future__ import annotations

import click

from cookshelf.cli import _open_project, handle_errors


def register(group: click.Group) -> None:
    group.add_command(lock_group)


@click.group(name="lock")
def lock_group() -> None:
    """锁文件查看与维护"""


@lock_group.command(name="show")
@click.option("--cookfile", "-c", default=None, help="Cookfile 路径")
@handle_errors
def lock_show(cookfile: str | None) -> None:
    """列出锁文件中的条目"""
    lockfile = _open_project(cookfile).lockfile
    dependencies = sorted(lockfile.dependencies(), key=lambda d: d.name)
    if not dependencies:
        click.echo("锁文件中没有条目。")
        return
    click.echo(f"sha: {lockfile.sha or '(已同步)'}")
    for dependency in dependencies:
        options = dependency.options_hash()
        version = options.pop("locked_version", "-")
        extra = " ".join(f"{k}={v}" for k, v in options.items())
        click.echo(f"  {dependency.name:24s} {version:12s} {extra}".rstrip())


@lock_group.command(name="unlock")
@click.argument("name")
@click.option("--cookfile", "-c", default=None, help="Cookfile 路径")
@handle_errors
def lock_unlock(name: str, cookfile: str | None) -> None:
    """从锁文件移除条目"""
    lockfile = _open_project(cookfile).lockfile
    lockfile.unlock(name)
    lockfile.save()
    click.echo(f"已解除锁定: {name}")


@lock_group.command(name="reset-sha")
@click.option("--cookfile", "-c", default=None, help="Cookfile 路径")
@handle_errors
def lock_reset_sha(cookfile: str | None) -> None:
    """将锁文件标记为与 Cookfile 同步"""
    lockfile = _open_project(cookfile).lockfile
    lockfile.reset_sha()
    lockfile.save()
    click.echo("sha 已重置")
