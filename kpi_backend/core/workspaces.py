from __future__ import annotations

import os
import re
from pathlib import Path


def _base_root() -> Path:
    env_root = os.getenv("EXPORTS_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(__file__).resolve().parents[2] / "exports"


def workspace_folder_name(workspace: str) -> str:
    """Filesystem-safe folder name for a workspace identifier."""

    return re.sub(r"[^a-z0-9._-]+", "_", workspace.lower()).strip("._") or "workspace"


def ensure_export_root(workspace: str) -> Path:
    """Ensure the workspace export folder exists and return it."""

    root = _base_root() / workspace_folder_name(workspace)
    root.mkdir(parents=True, exist_ok=True)
    return root
