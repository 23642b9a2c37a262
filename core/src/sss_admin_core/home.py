from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AdminPaths:
    home: Path
    config_dir: Path
    logs_dir: Path

    @property
    def admin_config_path(self) -> Path:
        return self.config_dir / "admin.json"


def _default_home() -> Path:
    if sys.platform.startswith("win"):
        base = os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(base) / "SSSAdmin"
    xdg = os.environ.get("XDG_DATA_HOME")
    base_dir = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base_dir / "sss-admin"


def resolve_admin_home(environ: dict[str, str] | None = None) -> Path:
    """Home for config/ and logs/: SSS_ADMIN_HOME (relative to the user's home), else a data dir."""

    env = os.environ if environ is None else environ
    raw = (env.get("SSS_ADMIN_HOME") or "").strip()
    if not raw:
        return _default_home().resolve()
    return (Path.home() / Path(raw).expanduser()).resolve()


def ensure_admin_layout(home: Path) -> AdminPaths:
    paths = AdminPaths(home=home, config_dir=home / "config", logs_dir=home / "logs")
    for path in (paths.config_dir, paths.logs_dir):
        path.mkdir(parents=True, exist_ok=True)
    return paths
