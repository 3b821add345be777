"""
Utils module - Utility functions and helpers.
"""

from wamedia.utils.paths import get_secure_temp_dir, resolve_scratch_dir, sibling_temp_path

__all__ = [
    "get_secure_temp_dir",
    "resolve_scratch_dir",
    "sibling_temp_path",
]
