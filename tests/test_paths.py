"""Tests for directory resolution and file naming."""

import os
from pathlib import Path

import pytest

from streamlog.config import Config, NamingMode
from streamlog.errors import ConfigError
from streamlog.paths import (
    active_name,
    archive_name,
    archive_pattern,
    ensure_dir,
    resolve_log_dir,
)

MS = 1_000_000


class TestResolveLogDir:
    def test_explicit_base_dir_wins(self):
        cfg = Config(app_name="web", base_dir="/srv/logs")
        assert resolve_log_dir(cfg, env={"HOME": "/home/u"}, uid=0) == Path("/srv/logs/web")

    def test_root_uses_var_log(self):
        cfg = Config(app_name="web")
        assert resolve_log_dir(cfg, env={}, uid=0) == Path("/var/log/web")

    def test_xdg_data_home(self):
        cfg = Config(app_name="web")
        env = {"XDG_DATA_HOME": "/data", "HOME": "/home/u"}
        assert resolve_log_dir(cfg, env=env, uid=1000) == Path("/data/streamlog/web")

    def test_home_fallback(self):
        cfg = Config(app_name="web")
        path = resolve_log_dir(cfg, env={"HOME": "/home/u/"}, uid=1000)
        assert path == Path("/home/u/.local/share/streamlog/logs/web")

    def test_flat_mode_has_no_app_subdir(self):
        cfg = Config(app_name="web", naming=NamingMode.FLAT)
        path = resolve_log_dir(cfg, env={"HOME": "/home/u"}, uid=1000)
        assert path == Path("/home/u/.local/share/streamlog/logs")

    def test_no_environment(self):
        with pytest.raises(ConfigError):
            resolve_log_dir(Config(app_name="web"), env={}, uid=1000)


class TestEnsureDir:
    def test_creates_every_level(self, tmp_path):
        target = tmp_path / "a" / "b" / "c"
        assert ensure_dir(target) == target
        assert target.is_dir()

    def test_existing_directory_ok(self, tmp_path):
        assert ensure_dir(tmp_path) == tmp_path

    def test_file_in_the_way(self, tmp_path):
        (tmp_path / "a").write_text("")
        with pytest.raises(ConfigError):
            ensure_dir(tmp_path / "a" / "b")

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unwritable_parent(self, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir(mode=0o500)
        try:
            with pytest.raises(ConfigError):
                ensure_dir(locked / "logs")
        finally:
            locked.chmod(0o700)


class TestNames:
    def test_subdirectory_names(self):
        cfg = Config(app_name="web")
        assert active_name(cfg) == "current.log"
        assert archive_name(cfg, 1_736_942_400_123 * MS) == "1736942400123.log"

    def test_flat_names(self):
        cfg = Config(app_name="web", naming=NamingMode.FLAT)
        assert active_name(cfg) == "web.log"
        assert archive_name(cfg, 1_736_942_400_123 * MS) == "web.1736942400123.log"

    def test_pattern_subdirectory(self):
        pattern = archive_pattern(Config(app_name="web"))
        assert pattern.match("1736942400123.log")
        assert not pattern.match("current.log")
        assert not pattern.match("web.1736942400123.log")

    def test_pattern_flat(self):
        pattern = archive_pattern(Config(app_name="web", naming=NamingMode.FLAT))
        assert pattern.match("web.1736942400123.log")
        assert not pattern.match("web.log")
        assert not pattern.match("api.1736942400123.log")
        assert not pattern.match("1736942400123.log")

    def test_names_sort_in_creation_order(self):
        cfg = Config(app_name="web", naming=NamingMode.FLAT)
        created = [1_736_942_400_000 * MS + i * 997 * MS for i in range(50)]
        names = [archive_name(cfg, ns) for ns in created]
        assert sorted(names) == names
