"""来源实现测试 - path / git / site"""

from __future__ import annotations

import io
import json
import subprocess
import tarfile
import urllib.error
from pathlib import Path
from typing import Any

import pytest

from cookshelf.core.dep.dependency import Dependency
from cookshelf.core.dep.locations import (
    COMMUNITY_API,
    GitLocation,
    PathLocation,
    SiteLocation,
    init_location,
)
from cookshelf.core.exceptions import (
    CookbookNotFound,
    CookbookValidationFailure,
    DependencyError,
    GitError,
    ValidationError,
)


class TestInitLocation:
    def test_no_location_key(self) -> None:
        assert init_location("x", ">= 0.0.0", {"locked_version": "1.0"}) is None

    def test_first_key_wins(self) -> None:
        loc = init_location("x", ">= 0.0.0", {"site": "opscode", "path": "/p"})
        assert isinstance(loc, PathLocation)

    def test_relative_path_uses_base_dir(self, tmp_path: Path) -> None:
        loc = init_location("x", ">= 0.0.0", {"path": "cookbooks/x"}, base_dir=tmp_path)
        assert isinstance(loc, PathLocation)
        assert loc.path == tmp_path / "cookbooks" / "x"


class TestPathLocation:
    def test_cookbook_dir(self, tmp_path: Path, make_cookbook) -> None:
        path = make_cookbook(tmp_path, "app", "0.2.0")
        loc = PathLocation("app", ">= 0.0.0", {"path": str(path)})
        cached = loc.download(tmp_path / "store")
        assert cached.version == "0.2.0"
        assert cached.path == path
        assert not (tmp_path / "store").exists()

    def test_repository_dir(self, tmp_path: Path, make_cookbook) -> None:
        """path 为存放多个 cookbook 的目录时取 path/<name>"""
        make_cookbook(tmp_path / "vendor", "app")
        make_cookbook(tmp_path / "vendor", "db")
        loc = PathLocation("db", ">= 0.0.0", {"path": str(tmp_path / "vendor")})
        assert loc.download(tmp_path / "store").name == "db"

    def test_repository_without_cookbook(self, tmp_path: Path, make_cookbook) -> None:
        make_cookbook(tmp_path / "vendor", "app")
        loc = PathLocation("db", ">= 0.0.0", {"path": str(tmp_path / "vendor")})
        with pytest.raises(CookbookNotFound):
            loc.download(tmp_path / "store")

    def test_missing_dir(self, tmp_path: Path) -> None:
        loc = PathLocation("app", ">= 0.0.0", {"path": str(tmp_path / "nope")})
        with pytest.raises(CookbookNotFound, match="不存在于路径"):
            loc.download(tmp_path / "store")

    def test_name_mismatch(self, tmp_path: Path, make_cookbook) -> None:
        path = make_cookbook(tmp_path, "other", dirname="app")
        loc = PathLocation("app", ">= 0.0.0", {"path": str(path)})
        with pytest.raises(CookbookValidationFailure, match="名称不匹配"):
            loc.download(tmp_path / "store")

    def test_str(self) -> None:
        assert str(PathLocation("app", "", {"path": "/srv/app"})) == "source at /srv/app"


def _completed(
    args: list[str], rc: int = 0, stdout: str = "", stderr: str = "",
) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args, rc, stdout=stdout, stderr=stderr)


HEAD_SHA = "6fc6a214d0c1e0d2b0b5c3a9e8f7a6b5c4d3e2f1"


class TestGitLocation:
    def test_clone_checkout_and_store(
        self, tmp_path: Path, make_cookbook, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        calls: list[list[str]] = []

        def fake_run(args: list[str], cwd: str | None = None, **kwargs: Any) -> subprocess.CompletedProcess:
            calls.append(args)
            if args[1] == "clone":
                make_cookbook(Path(args[-1]), "mc", "1.2.3", dirname="cookbooks/mc")
            if args[1] == "rev-parse":
                return _completed(args, stdout=f"{HEAD_SHA}\n")
            return _completed(args)

        monkeypatch.setattr(subprocess, "run", fake_run)
        loc = GitLocation("mc", ">= 0.0.0", {
            "git": "https://example.com/mc.git", "tag": "v1.2.3", "rel": "cookbooks/mc",
        })
        cached = loc.download(tmp_path / "store")

        assert [c[1] for c in calls] == ["clone", "checkout", "rev-parse"]
        assert calls[1] == ["git", "checkout", "v1.2.3"]
        assert cached.path == tmp_path / "store" / "mc-1.2.3"
        assert (cached.path / "metadata.json").is_file()
        assert loc.revision == HEAD_SHA
        assert str(loc) == "git: 'https://example.com/mc.git' at v1.2.3"

    def test_branch_pinned_to_commit(
        self, tmp_path: Path, make_cookbook, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """按分支拉取后，锁定字段记录实际检出的提交"""
        def fake_run(args: list[str], cwd: str | None = None, **kwargs: Any) -> subprocess.CompletedProcess:
            if args[1] == "clone":
                make_cookbook(Path(args[-1]).parent, "mc", "1.0.0")
            if args[1] == "rev-parse":
                return _completed(args, stdout=f"{HEAD_SHA}\n")
            return _completed(args)

        monkeypatch.setattr(subprocess, "run", fake_run)
        dependency = Dependency(None, "mc", {"git": "https://example.com/mc.git", "branch": "main"})
        dependency.cached_cookbook = dependency.location.download(tmp_path / "store")

        assert dependency.options_hash() == {
            "locked_version": "1.0.0",
            "git": "https://example.com/mc.git",
            "ref": HEAD_SHA,
            "branch": "main",
        }

    def test_locked_ref_checked_out(
        self, tmp_path: Path, make_cookbook, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        calls: list[list[str]] = []

        def fake_run(args: list[str], cwd: str | None = None, **kwargs: Any) -> subprocess.CompletedProcess:
            calls.append(args)
            if args[1] == "clone":
                make_cookbook(Path(args[-1]).parent, "mc", "1.0.0")
            if args[1] == "rev-parse":
                return _completed(args, stdout=HEAD_SHA)
            return _completed(args)

        monkeypatch.setattr(subprocess, "run", fake_run)
        loc = GitLocation("mc", ">= 0.0.0", {
            "git": "https://example.com/mc.git", "branch": "main", "ref": HEAD_SHA,
        })
        loc.download(tmp_path / "store")

        assert calls[1] == ["git", "checkout", HEAD_SHA]

    def test_clone_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            subprocess, "run",
            lambda args, **kw: _completed(args, rc=128, stderr="repository not found"),
        )
        loc = GitLocation("mc", ">= 0.0.0", {"git": "https://example.com/mc.git"})
        with pytest.raises(GitError, match="git clone 失败"):
            loc.download(tmp_path / "store")

    def test_git_missing(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(args: list[str], **kw: Any) -> subprocess.CompletedProcess:
            raise FileNotFoundError("git")

        monkeypatch.setattr(subprocess, "run", boom)
        loc = GitLocation("mc", ">= 0.0.0", {"git": "https://example.com/mc.git"})
        with pytest.raises(GitError, match="无法执行 git"):
            loc.download(tmp_path / "store")


class FakeResponse(io.BytesIO):
    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def _tarball(tmp_path: Path, make_cookbook, name: str, version: str) -> Path:
    src = make_cookbook(tmp_path / "src", name, version)
    archive = tmp_path / f"{name}.tar.gz"
    with tarfile.open(archive, "w:gz") as tf:
        tf.add(src, arcname=name)
    return archive


class FakeSite:
    """模拟社区站点 API"""

    def __init__(self, api: str, cookbooks: dict[str, dict[str, Path]]) -> None:
        self.api = api
        self.cookbooks = cookbooks
        self.requests: list[str] = []

    def urlopen(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.requests.append(url)
        parts = url[len(self.api):].strip("/").split("/")
        name = parts[1]
        if name not in self.cookbooks:
            raise urllib.error.HTTPError(url, 404, "Not Found", None, None)  # type: ignore[arg-type]
        versions = self.cookbooks[name]
        if len(parts) == 2:
            latest = sorted(versions)[-1]
            body = {"name": name, "latest_version": f"{self.api}/cookbooks/{name}/versions/{latest}"}
        else:
            version = parts[3]
            if version not in versions:
                raise urllib.error.HTTPError(url, 404, "Not Found", None, None)  # type: ignore[arg-type]
            body = {"version": version, "file": f"https://files.example.com/{name}-{version}.tgz"}
        return FakeResponse(json.dumps(body).encode("utf-8"))

    def urlretrieve(self, url: str, dest: str) -> None:
        self.requests.append(url)
        name, version = url.rsplit("/", 1)[-1][:-4].rsplit("-", 1)
        Path(dest).write_bytes(self.cookbooks[name][version].read_bytes())


@pytest.fixture()
def site(tmp_path: Path, make_cookbook, monkeypatch: pytest.MonkeyPatch) -> FakeSite:
    fake = FakeSite("https://site.example.com/api/v1", {
        "nginx": {
            "2.7.4": _tarball(tmp_path / "a", make_cookbook, "nginx", "2.7.4"),
            "2.7.6": _tarball(tmp_path / "b", make_cookbook, "nginx", "2.7.6"),
        },
    })
    monkeypatch.setattr("urllib.request.urlopen", fake.urlopen)
    monkeypatch.setattr("urllib.request.urlretrieve", fake.urlretrieve)
    return fake


class TestSiteLocation:
    def test_aliases(self) -> None:
        assert SiteLocation("x", "", {"site": ":opscode"}).api_uri == COMMUNITY_API
        assert SiteLocation("x", "", {"site": "https://a/api/"}).api_uri == "https://a/api"

    @pytest.mark.parametrize("constraint, locked, expected", [
        (">= 0.0.0", None, ""),
        ("~> 2.7", None, ""),
        ("= 2.7.4", None, "2.7.4"),
        ("2.7.4", None, "2.7.4"),
        (">= 0.0.0", "2.7.6", "2.7.6"),
    ])
    def test_target_version(self, constraint: str, locked: str | None, expected: str) -> None:
        options = {"site": "opscode", "locked_version": locked} if locked else {"site": "opscode"}
        assert SiteLocation("x", constraint, options).target_version() == expected

    def test_latest_version(self, tmp_path: Path, site: FakeSite) -> None:
        loc = SiteLocation("nginx", ">= 0.0.0", {"site": site.api})
        cached = loc.download(tmp_path / "store")
        assert cached.version == "2.7.6"
        assert cached.path == tmp_path / "store" / "nginx-2.7.6"

    def test_pinned_version_then_cache_hit(self, tmp_path: Path, site: FakeSite) -> None:
        loc = SiteLocation("nginx", "= 2.7.4", {"site": site.api})
        assert loc.download(tmp_path / "store").version == "2.7.4"
        count = len(site.requests)
        assert loc.download(tmp_path / "store").version == "2.7.4"
        assert len(site.requests) == count

    def test_unknown_cookbook(self, tmp_path: Path, site: FakeSite) -> None:
        loc = SiteLocation("apache2", ">= 0.0.0", {"site": site.api})
        with pytest.raises(CookbookNotFound):
            loc.download(tmp_path / "store")

    def test_unknown_version(self, tmp_path: Path, site: FakeSite) -> None:
        loc = SiteLocation("nginx", "= 9.9.9", {"site": site.api})
        with pytest.raises(CookbookNotFound):
            loc.download(tmp_path / "store")

    def test_server_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(url: str, timeout: float | None = None) -> FakeResponse:
            raise urllib.error.HTTPError(url, 500, "boom", None, None)  # type: ignore[arg-type]

        monkeypatch.setattr("urllib.request.urlopen", broken)
        loc = SiteLocation("nginx", ">= 0.0.0", {"site": "https://site.example.com/api/v1"})
        with pytest.raises(DependencyError, match="HTTP 500") as exc_info:
            loc.download(tmp_path / "store")
        assert not isinstance(exc_info.value, CookbookNotFound)

    def test_non_http_scheme_rejected(self, tmp_path: Path) -> None:
        loc = SiteLocation("nginx", ">= 0.0.0", {"site": "file:///etc"})
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            loc.download(tmp_path / "store")
