"""公共测试夹具"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml


class RecordingReporter:
    """记录 warn / error 调用的 Reporter"""

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


def make_cookbook(root: Path, name: str, version: str = "1.0.0", dirname: str = "") -> Path:
    """在 root 下创建一个带 metadata.json 的 cookbook 目录"""
    path = root / (dirname or name)
    path.mkdir(parents=True, exist_ok=True)
    (path / "metadata.json").write_text(
        json.dumps({"name": name, "version": version}), encoding="utf-8",
    )
    (path / "recipes").mkdir(exist_ok=True)
    (path / "recipes" / "default.rb").write_text("# default\n", encoding="utf-8")
    return path


def write_cookfile(root: Path, data: dict) -> Path:
    cookfile = root / "Cookfile.yml"
    cookfile.write_text(yaml.dump(data, allow_unicode=True, sort_keys=False), encoding="utf-8")
    return cookfile


@pytest.fixture()
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture(name="make_cookbook")
def make_cookbook_fixture() -> Callable[..., Path]:
    return make_cookbook


@pytest.fixture(name="write_cookfile")
def write_cookfile_fixture() -> Callable[..., Path]:
    return write_cookfile
