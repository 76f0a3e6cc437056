"""Time-indexed population trace.

A LotkaVolterraTrace is an append-only sequence of (time, populations)
snapshots, strictly increasing in time. It answers point queries at any
time by linear interpolation between the two bracketing snapshots (binary
search, O(log n)), clamping to the first/last snapshot outside the recorded
range.

Text format (one snapshot per row, space-separated):

    n
    t_0 p_0_0 p_0_1 ... p_0_{n-1}
    t_1 p_1_0 ...
"""

from __future__ import annotations

import bisect
import logging
import math
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from lotka_volterra.errors import (
    ContractError,
    InvalidParameterError,
    TraceFormatError,
)
from lotka_volterra.utils import (
    PathLike,
    format_float,
    format_row,
    parse_count,
    parse_floats,
    read_tokens,
)

logger = logging.getLogger(__name__)


class LotkaVolterraTrace:
    """Population evolution trace for a Lotka-Volterra model."""

    def __init__(self, n_species: int):
        if n_species < 0:
            raise InvalidParameterError(
                f"n_species must be >= 0, got {n_species}"
            )
        self._n = int(n_species)
        self._times: List[float] = []
        self._states: List[np.ndarray] = []

    @classmethod
    def from_file(cls, path: PathLike) -> 'LotkaVolterraTrace':
        """Construct a trace by reading it from a trace file."""
        trace = cls(0)
        trace.read_from_file(path)
        return trace

    # ── basic properties ────────────────────────────────────────────

    @property
    def n_species(self) -> int:
        return self._n

    def __len__(self) -> int:
        return len(self._times)

    def __iter__(self) -> Iterator[Tuple[float, np.ndarray]]:
        for t, state in zip(self._times, self._states):
            yield t, state

    @property
    def max_time(self) -> float:
        """Last recorded time, or NaN if the trace is empty."""
        if not self._times:
            return math.nan
        return self._times[-1]

    def get_max_time(self) -> float:
        return self.max_time

    @property
    def times(self) -> np.ndarray:
        """Recorded times as a (m,) array."""
        return np.array(self._times, dtype=np.float64)

    @property
    def populations(self) -> np.ndarray:
        """Recorded populations as an (m, n) array."""
        if not self._states:
            return np.empty((0, self._n), dtype=np.float64)
        return np.vstack(self._states)

    # ── mutation ────────────────────────────────────────────────────

    def add_state(self, time: float, populations: Sequence[float]) -> None:
        """Append a snapshot. Time must exceed the last recorded time.

        Raises:
            ContractError: On a length mismatch or a non-increasing time.
        """
        state = np.array(populations, dtype=np.float64)
        if state.shape != (self._n,):
            raise ContractError(
                f"state has shape {state.shape}, expected ({self._n},)"
            )
        time = float(time)
        if self._times and not time > self._times[-1]:
            raise ContractError(
                f"state time {time} must be greater than the last state "
                f"time {self._times[-1]}"
            )
        state.flags.writeable = False
        self._times.append(time)
        self._states.append(state)

    # ── queries ─────────────────────────────────────────────────────

    def get_state_at_time(self, time: float) -> Optional[np.ndarray]:
        """Population state at `time`, linearly interpolated if needed.

        Returns None on an empty trace. Queries at or before the first
        recorded time return the first snapshot; at or after the last,
        the last snapshot.
        """
        if not self._times:
            return None
        if math.isnan(time):
            raise ContractError("cannot query a trace at time NaN")
        if time <= self._times[0]:
            return self._states[0].copy()
        if time >= self._times[-1]:
            return self._states[-1].copy()

        # first entry with time >= query; 0 < left < len by the clamps above
        left = bisect.bisect_left(self._times, time)
        if self._times[left] == time:
            return self._states[left].copy()

        t1, t2 = self._times[left - 1], self._times[left]
        p1, p2 = self._states[left - 1], self._states[left]
        return p1 + (p2 - p1) * (time - t1) / (t2 - t1)

    def resample(self, times: Sequence[float]) -> np.ndarray:
        """Interpolated states at each of `times` as an (m, n) array."""
        if not self._times:
            raise ContractError("cannot resample an empty trace")
        out = np.empty((len(times), self._n), dtype=np.float64)
        for k, t in enumerate(times):
            out[k] = self.get_state_at_time(t)
        return out

    def sample_times(self, start: float, end: float, step: float) -> List[float]:
        """Regular grid start, start+step, ... while <= end.

        The grid is accumulated (t += step), so it drifts like the
        integration loop does.
        """
        if not step > 0:
            raise InvalidParameterError(f"sampling step must be > 0, got {step}")
        grid = []
        t = float(start)
        while t <= end:
            grid.append(t)
            t += step
        return grid

    # ── file I/O ────────────────────────────────────────────────────

    def save_to_file(
        self,
        path: PathLike,
        start: Optional[float] = None,
        end: Optional[float] = None,
        step: Optional[float] = None,
    ) -> None:
        """Write the trace to a text file.

        With no sampling arguments every stored snapshot is written
        verbatim. With start/end/step, the trace is resampled at
        start, start+step, ... while <= end.
        """
        sampling = (start, end, step)
        if all(v is None for v in sampling):
            rows = list(zip(self._times, self._states))
        elif any(v is None for v in sampling):
            raise InvalidParameterError(
                "start, end and step must be given together"
            )
        else:
            grid = self.sample_times(start, end, step)
            if grid and not self._times:
                raise ContractError("cannot resample an empty trace")
            rows = [(t, self.get_state_at_time(t)) for t in grid]
            logger.debug(f"Resampled {len(self)} states onto {len(grid)} points")

        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(f"{self._n}\n")
            for t, state in rows:
                if self._n:
                    f.write(f"{format_float(t)} {format_row(state)}\n")
                else:
                    f.write(f"{format_float(t)}\n")
        logger.info(f"Saved trace ({len(rows)} rows) to {path}")

    def read_from_file(self, path: PathLike) -> None:
        """Replace the contents of this trace with those of a trace file.

        Existing states are cleared before parsing, so a failed read
        leaves the trace empty or partially filled.

        Raises:
            FileNotFoundError: If path doesn't exist.
            TraceFormatError: On a malformed header or a truncated row.
            ContractError: If the file's times are not strictly increasing.
        """
        tokens = read_tokens(path)
        if not tokens:
            raise TraceFormatError(f"{path}: empty trace file")
        self._n = parse_count(tokens[0], path)
        self._times.clear()
        self._states.clear()

        values = parse_floats(tokens[1:], path)
        width = self._n + 1
        if len(values) % width != 0:
            raise TraceFormatError(
                f"{path}: {len(values)} values do not form rows of {width}"
            )
        for i in range(0, len(values), width):
            self.add_state(values[i], values[i + 1:i + width])
        logger.info(f"Read trace ({len(self)} states, {self._n} species) from {path}")

    def __str__(self) -> str:
        lines = ["Lotka-Volterra trace:", "Time\tPopulations"]
        for t, state in self:
            lines.append('\t'.join([format_float(t)] + [format_float(p) for p in state]))
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (f"LotkaVolterraTrace(n_species={self._n}, "
                f"n_states={len(self)}, max_time={self.max_time})")
