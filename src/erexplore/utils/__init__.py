"""Utility modules for exploratory expression analysis."""

from erexplore.utils.fileio import (
    atomic_write_json,
    atomic_write_text,
    atomic_write_frame,
    to_jsonable,
)

__all__ = [
    # Atomic file-write utilities
    'atomic_write_json',
    'atomic_write_text',
    'atomic_write_frame',
    'to_jsonable',
]
