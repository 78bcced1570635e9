"""CLI: 安装 / 更新 / 来源查看"""

from __future__ import annotations

import click

from cookshelf.cli import _open_project, handle_errors


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(update)
    group.add_command(locations)


@click.command()
@click.option("--cookfile", "-c", default=None, help="Cookfile 路径")
@handle_errors
def install(cookfile: str | None) -> None:
    """按 Cookfile 下载 cookbook 并写入锁文件"""
    installer = _open_project(cookfile)
    for dependency, cached in installer.install():
        click.echo(f"  {dependency.name:24s} {cached.version:12s} {cached.path}")
    click.echo(f"锁文件: {installer.lockfile.filepath}")


@click.command()
@click.argument("names", nargs=-1)
@click.option("--cookfile", "-c", default=None, help="Cookfile 路径")
@handle_errors
def update(names: tuple[str, ...], cookfile: str | None) -> None:
    """解除锁定（默认全部）并重新安装"""
    installer = _open_project(cookfile)
    for dependency, cached in installer.update(list(names)):
        click.echo(f"  {dependency.name:24s} {cached.version:12s} {cached.path}")


@click.command()
@click.option("--cookfile", "-c", default=None, help="Cookfile 路径")
@handle_errors
def locations(cookfile: str | None) -> None:
    """按优先级列出生效的默认来源"""
    installer = _open_project(cookfile)
    for i, loc in enumerate(installer.downloader.locations(), start=1):
        extra = f" {loc.options}" if loc.options else ""
        click.echo(f"  {i}. {loc.type:5s} {loc.value}{extra}")
