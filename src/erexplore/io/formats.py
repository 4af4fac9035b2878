"""
Delimiter detection for tabular inputs.

Expression matrices and clinical tables arrive as CSV or TSV depending on
the portal they were downloaded from, optionally gzip-compressed. The
delimiter is sniffed from the first few kilobytes; anything ambiguous is
rejected with LoadError instead of being guessed.

cBioPortal clinical exports open with ``#``-prefixed metadata lines
(display names, descriptions, datatypes, priorities) above the real
header. Those lines are counted by ``leading_comment_lines`` and ignored
by the sniffer.
"""

from __future__ import annotations

import csv
import gzip
from pathlib import Path
from typing import IO

from erexplore.exceptions import LoadError

__all__ = [
    'SUPPORTED_DELIMITERS',
    'COMMENT_PREFIX',
    'open_text',
    'leading_comment_lines',
    'sniff_delimiter',
    'delimiter_for_suffix',
]

SUPPORTED_DELIMITERS = ('\t', ',', ';')
COMMENT_PREFIX = '#'

_SUFFIX_DELIMITERS = {
    '.csv': ',',
    '.tsv': '\t',
    '.tab': '\t',
}


def open_text(path: Path) -> IO[str]:
    """Open a table for reading as text, decompressing ``.gz`` files."""
    path = Path(path)
    if path.suffix.lower() == '.gz':
        return gzip.open(path, 'rt', encoding='utf-8', errors='ignore')
    return open(path, 'r', encoding='utf-8', errors='ignore')


def delimiter_for_suffix(path: Path) -> str | None:
    """Delimiter implied by the file extension (``.csv``, ``.tsv``), if any."""
    suffixes = [s.lower() for s in Path(path).suffixes if s.lower() != '.gz']
    if not suffixes:
        return None
    return _SUFFIX_DELIMITERS.get(suffixes[-1])


def leading_comment_lines(path: Path, prefix: str = COMMENT_PREFIX) -> int:
    """Number of lines at the top of the file starting with ``prefix``."""
    count = 0
    try:
        with open_text(path) as f:
            for line in f:
                if not line.startswith(prefix):
                    break
                count += 1
    except (OSError, EOFError) as e:
        raise LoadError(f"could not read file ({e})", path) from e
    return count


def sniff_delimiter(path: Path, sample_size: int = 8192) -> str:
    """
    Auto-detect the delimiter of a text table.

    Uses ``csv.Sniffer`` restricted to tab/comma/semicolon, then falls back
    to counting candidates in the header line. Leading ``#`` metadata
    lines are skipped.

    Raises:
        LoadError: If no supported delimiter is found
    """
    try:
        with open_text(path) as f:
            sample = f.read(sample_size)
    except (OSError, EOFError) as e:
        raise LoadError(f"could not read file ({e})", path) from e

    lines = sample.split('\n')
    while lines and lines[0].startswith(COMMENT_PREFIX):
        lines.pop(0)
    sample = '\n'.join(lines)

    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=''.join(SUPPORTED_DELIMITERS))
        return dialect.delimiter
    except csv.Error:
        pass

    first_line = lines[0] if lines else ''
    counts = {d: first_line.count(d) for d in SUPPORTED_DELIMITERS}
    if max(counts.values()) == 0:
        raise LoadError("could not detect a tab, comma or semicolon delimiter", path)
    return max(counts, key=counts.get)
