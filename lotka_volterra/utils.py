"""Utility functions for the Lotka-Volterra engine.

Plain-text number formatting and tokenizing shared by the model and trace
file formats.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Union

from lotka_volterra.errors import TraceFormatError

PathLike = Union[str, Path]


def format_float(value: float) -> str:
    """Shortest text that parses back to exactly the same double.

    Always uses '.' as decimal separator, independent of the process locale.
    """
    return repr(float(value))


def format_row(values: Iterable[float]) -> str:
    """Space-separated row of formatted floats."""
    return ' '.join(format_float(v) for v in values)


def read_tokens(path: PathLike) -> List[str]:
    """Read a whitespace/newline-delimited text file into tokens.

    Raises:
        FileNotFoundError: If path doesn't exist.
    """
    with open(path, 'r', encoding='utf-8') as f:
        return f.read().split()


def parse_count(token: str, path: PathLike) -> int:
    """Parse the species-count header of a model or trace file."""
    try:
        n = int(token)
    except ValueError:
        raise TraceFormatError(
            f"{path}: expected species count, got '{token}'"
        ) from None
    if n < 0:
        raise TraceFormatError(f"{path}: negative species count {n}")
    return n


def parse_floats(tokens: List[str], path: PathLike) -> List[float]:
    """Parse tokens as floats ('.' decimal point only)."""
    try:
        return [float(tok) for tok in tokens]
    except ValueError as e:
        raise TraceFormatError(f"{path}: {e}") from None
