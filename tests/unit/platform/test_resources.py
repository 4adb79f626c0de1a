"""Tests for LocalResourceProvisioner."""

import os
import stat

import pytest

from tests.unit.conftest import FakePlatform
from webfarm.platform.base import LocalResourceNotFoundError
from webfarm.platform.resources import (
    FULL_CONTROL_BITS,
    LocalResourcePath,
    LocalResourceProvisioner,
    strip_trailing_separators,
)


def mode_of(path) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)


@pytest.fixture
def sites_dir(tmp_path):
    root = tmp_path / "Sites"
    (root / "site1" / "bin").mkdir(parents=True)
    (root / "site1" / "web.config").write_text("<configuration/>")
    root.chmod(0o700)
    (root / "site1").chmod(0o700)
    (root / "site1" / "web.config").chmod(0o600)
    return root


class TestStripTrailingSeparators:
    def test_strips_separators(self):
        assert strip_trailing_separators(f"/data/Sites{os.sep}{os.sep}") == "/data/Sites"

    def test_leaves_clean_path(self):
        assert strip_trailing_separators("/data/Sites") == "/data/Sites"

    def test_keeps_filesystem_root(self):
        assert strip_trailing_separators(os.sep) == os.sep


class TestAcquire:
    def test_returns_stripped_path(self, sites_dir):
        platform = FakePlatform(resources={"Sites": f"{sites_dir}{os.sep}"})
        resource = LocalResourceProvisioner(platform).acquire("Sites")

        assert resource == LocalResourcePath(name="Sites", root_path=str(sites_dir))
        assert resource.path == sites_dir

    def test_grants_full_control_recursively(self, sites_dir):
        platform = FakePlatform(resources={"Sites": str(sites_dir)})
        LocalResourceProvisioner(platform).acquire("Sites")

        for path in (sites_dir, sites_dir / "site1", sites_dir / "site1" / "web.config"):
            assert mode_of(path) & FULL_CONTROL_BITS == FULL_CONTROL_BITS

    def test_acquire_twice_same_path(self, sites_dir):
        platform = FakePlatform(resources={"Sites": f"{sites_dir}/"})
        provisioner = LocalResourceProvisioner(platform)

        first = provisioner.acquire("Sites")
        second = provisioner.acquire("Sites")

        assert first == second
        assert provisioner.acquired() == {"Sites": first}

    def test_missing_resource_raises(self):
        provisioner = LocalResourceProvisioner(FakePlatform(resources={}))
        with pytest.raises(LocalResourceNotFoundError) as exc_info:
            provisioner.acquire("Execution")
        assert exc_info.value.logical_name == "Execution"

    def test_missing_resource_not_cached(self, sites_dir):
        platform = FakePlatform(resources={})
        provisioner = LocalResourceProvisioner(platform)
        with pytest.raises(LocalResourceNotFoundError):
            provisioner.acquire("Sites")
        assert provisioner.acquired() == {}

    def test_nonexistent_root_raises_not_found(self, tmp_path):
        platform = FakePlatform(resources={"Sites": str(tmp_path / "gone")})
        provisioner = LocalResourceProvisioner(platform)

        with pytest.raises(LocalResourceNotFoundError) as exc_info:
            provisioner.acquire("Sites")

        assert exc_info.value.logical_name == "Sites"
        assert provisioner.acquired() == {}
