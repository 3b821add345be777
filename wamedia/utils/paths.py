"""
Path Utilities
==============

OS-aware scratch locations for spilled ciphertext and staged plaintext.
"""

from __future__ import annotations

import platform
import secrets
import tempfile
from pathlib import Path
from typing import Optional


def get_secure_temp_dir() -> Path:
    """
    Get a private temporary directory for decrypt scratch files.

    Returns:
        Path to the directory, created owner-only (0700) if missing
    """
    temp_base = Path(tempfile.gettempdir())
    secure_temp = temp_base / "wamedia_scratch"

    secure_temp.mkdir(mode=0o700, exist_ok=True)

    # On Windows, permissions work differently
    if platform.system().lower() != "windows":
        secure_temp.chmod(0o700)

    return secure_temp


def resolve_scratch_dir(scratch_dir: Optional[Path] = None) -> Path:
    """Return ``scratch_dir`` (created if needed) or the private temp directory."""
    if scratch_dir is None:
        return get_secure_temp_dir()
    scratch_dir = Path(scratch_dir)
    scratch_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    return scratch_dir


def sibling_temp_path(target: Path) -> Path:
    """
    Unique hidden path next to ``target`` on the same filesystem.

    Used to stage output that is renamed into place only on success.
    """
    target = Path(target)
    return target.with_name(f".{target.name}.{secrets.token_hex(6)}.part")
