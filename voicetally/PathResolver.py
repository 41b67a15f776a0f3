# PathResolver.py
"""
Path resolution for development and portable layouts.

Development: running main.py from a source checkout; everything lives
next to main.py. Portable: a bundled build where the application sits in
_internal/app and user-writable data sits next to the bundle root.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

DistributionMode = Literal["portable", "development"]

DATA_DIR_ENV = 'VOICETALLY_DATA_DIR'


@dataclass(frozen=True)
class ResolvedPaths:
    """Immutable container for all resolved application paths."""
    app_dir: Path
    root_dir: Path
    config_dir: Path
    data_dir: Path
    logs_dir: Path
    environment: DistributionMode


class PathResolver:
    """
    Resolves application paths for the current environment.

    The data directory (persisted tally state) can be moved with the
    VOICETALLY_DATA_DIR environment variable.
    """

    def __init__(self, script_path: Path, data_dir_override: Optional[Path] = None):
        self._script_path = script_path.resolve()
        self._mode = self._detect_distribution_mode()
        if data_dir_override is None and os.environ.get(DATA_DIR_ENV):
            data_dir_override = Path(os.environ[DATA_DIR_ENV])
        self._paths = self._resolve_paths(data_dir_override)

    @property
    def paths(self) -> ResolvedPaths:
        """Returns resolved paths for current environment."""
        return self._paths

    @property
    def mode(self) -> DistributionMode:
        """Returns current distribution mode."""
        return self._mode

    def _detect_distribution_mode(self) -> DistributionMode:
        parts = self._script_path.parts
        if "_internal" in parts and "app" in parts:
            return "portable"
        return "development"

    def _resolve_paths(self, data_dir_override: Optional[Path]) -> ResolvedPaths:
        if self._mode == "portable":
            app_dir = self._script_path.parent
            root_dir = app_dir.parent.parent  # _internal/app -> bundle root
        else:
            app_dir = root_dir = self._script_path.parent

        data_dir = data_dir_override if data_dir_override is not None else root_dir / "data"

        return ResolvedPaths(
            app_dir=app_dir,
            root_dir=root_dir,
            config_dir=app_dir / "config",
            data_dir=data_dir,
            logs_dir=root_dir / "logs",
            environment=self._mode,
        )

    def get_config_path(self, config_name: str) -> Path:
        return self._paths.config_dir / config_name

    def get_data_path(self, file_name: str) -> Path:
        return self._paths.data_dir / file_name

    def ensure_local_dir_structure(self) -> None:
        """Ensures data and logs directories exist."""
        for directory in (self._paths.data_dir, self._paths.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)
        logging.debug(f"Using data dir {self._paths.data_dir} ({self._mode} mode)")
