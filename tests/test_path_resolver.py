# tests/test_path_resolver.py
"""Tests for PathResolver in development and portable layouts."""
from pathlib import Path

import pytest

from voicetally.PathResolver import DATA_DIR_ENV, PathResolver


@pytest.fixture(autouse=True)
def no_data_dir_env(monkeypatch):
    monkeypatch.delenv(DATA_DIR_ENV, raising=False)


class TestDevelopmentMode:
    """Running main.py from a source checkout."""

    def test_paths_next_to_script(self, tmp_path):
        resolver = PathResolver(tmp_path / "main.py")

        assert resolver.mode == "development"
        assert resolver.paths.config_dir == tmp_path.resolve() / "config"
        assert resolver.paths.data_dir == tmp_path.resolve() / "data"
        assert resolver.paths.logs_dir == tmp_path.resolve() / "logs"

    def test_config_and_data_paths(self, tmp_path):
        resolver = PathResolver(tmp_path / "main.py")

        assert resolver.get_config_path("tally_config.json") == tmp_path.resolve() / "config" / "tally_config.json"
        assert resolver.get_data_path("tally_state.json") == tmp_path.resolve() / "data" / "tally_state.json"


class TestPortableMode:
    """Bundled build: app in _internal/app, user data at the bundle root."""

    def test_data_and_logs_at_bundle_root(self, tmp_path):
        script = tmp_path / "VoiceTally" / "_internal" / "app" / "main.py"

        resolver = PathResolver(script)

        root = (tmp_path / "VoiceTally").resolve()
        assert resolver.mode == "portable"
        assert resolver.paths.root_dir == root
        assert resolver.paths.config_dir == root / "_internal" / "app" / "config"
        assert resolver.paths.data_dir == root / "data"
        assert resolver.paths.logs_dir == root / "logs"


class TestDataDirOverride:
    def test_explicit_override(self, tmp_path):
        resolver = PathResolver(tmp_path / "main.py", data_dir_override=tmp_path / "elsewhere")

        assert resolver.paths.data_dir == tmp_path / "elsewhere"

    def test_environment_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "from-env"))

        resolver = PathResolver(tmp_path / "main.py")

        assert resolver.paths.data_dir == Path(tmp_path / "from-env")

    def test_explicit_override_wins_over_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "from-env"))

        resolver = PathResolver(tmp_path / "main.py", data_dir_override=tmp_path / "cli")

        assert resolver.paths.data_dir == tmp_path / "cli"


def test_ensure_local_dir_structure(tmp_path):
    resolver = PathResolver(tmp_path / "main.py")

    resolver.ensure_local_dir_structure()

    assert resolver.paths.data_dir.is_dir()
    assert resolver.paths.logs_dir.is_dir()
