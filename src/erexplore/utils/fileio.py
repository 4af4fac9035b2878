"""
Atomic file-write utilities.

Run summaries and tables are written to a temporary file in the target
directory and moved into place with ``os.replace()``, so an interrupted run
never leaves a half-written output behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

import numpy as np
import pandas as pd

__all__ = ['atomic_write_json', 'atomic_write_text', 'atomic_write_frame', 'to_jsonable']


def to_jsonable(obj: Any) -> Any:
    """``json.dump`` default hook for numpy scalars/arrays and pandas indexes."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, (np.ndarray, pd.Index)):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _atomic_write(path: str | os.PathLike, write: Callable[[Any], None]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=path.parent, suffix=".tmp", delete=False, newline=""
        ) as tmp:
            tmp_path = tmp.name
            write(tmp)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any failure
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename.

    numpy scalars and arrays are converted with :func:`to_jsonable`.
    Parent directories are created as needed.
    """
    _atomic_write(path, lambda f: json.dump(data, f, indent=indent, default=to_jsonable))


def atomic_write_text(path: str | os.PathLike, content: str) -> None:
    """Write *content* as text atomically via temp-file + rename."""
    _atomic_write(path, lambda f: f.write(content))


def atomic_write_frame(path: str | os.PathLike, frame: pd.DataFrame, *, sep: str = ",") -> None:
    """Write a DataFrame (with its index) as delimited text atomically."""
    _atomic_write(path, lambda f: frame.to_csv(f, sep=sep))
