"""Generalized multi-species Lotka-Volterra predation model.

For each species i:

    dP_i/dt = P_i × (r_i − d_i·P_i + Σ_j (gain(i eats j) − loss(j eats i)) · P_j)

  - r: intrinsic growth rate (may be negative for obligate predators)
  - d: self-limitation (intraspecific damping), ≥ 0
  - loss(predator, prey): rate at which the predator depresses the prey, ≥ 0
  - gain(predator, prey): rate at which eating the prey grows the predator, ≥ 0

Storage layout: both interaction matrices are stored prey-major,
beta[prey, predator] and gamma[prey, predator], while the public accessors
take (predator, prey). The parameter file is written in storage order. The
two index-remapping functions below are the only place the inversion lives.

Parameter file format (whitespace-delimited, '.' decimal point):

    n
    r_0 ... r_{n-1}
    d_0 ... d_{n-1}
    beta  (n rows of n, storage order)
    gamma (n rows of n, storage order)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np

from lotka_volterra.errors import (
    ContractError,
    InvalidParameterError,
    SpeciesIndexError,
    TraceFormatError,
)
from lotka_volterra.integrator import integrate
from lotka_volterra.trace import LotkaVolterraTrace
from lotka_volterra.utils import (
    PathLike,
    format_row,
    parse_count,
    parse_floats,
    read_tokens,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# INDEX MAPPING: accessor (predator, prey) ↔ storage (row, col)
# ═══════════════════════════════════════════════════════════════════════

def storage_index(predator: int, prey: int) -> Tuple[int, int]:
    """Storage (row, col) of the coefficient for a predator/prey pair."""
    return prey, predator


def accessor_index(row: int, col: int) -> Tuple[int, int]:
    """(predator, prey) pair stored at storage position (row, col)."""
    return col, row


# ═══════════════════════════════════════════════════════════════════════
# MODEL
# ═══════════════════════════════════════════════════════════════════════

class LotkaVolterraModel:
    """Lotka-Volterra model for multiple species.

    Coefficients are zero until set. Resizing with set_number_of_species()
    discards every existing value.
    """

    def __init__(self, n_species: int = 0):
        self.set_number_of_species(n_species)

    @classmethod
    def from_file(cls, path: PathLike) -> 'LotkaVolterraModel':
        """Read a model from a parameter file.

        Raises:
            FileNotFoundError: If path doesn't exist.
            TraceFormatError: If the file is truncated or malformed.
            InvalidParameterError: If a d/beta/gamma value is negative.
        """
        tokens = read_tokens(path)
        if not tokens:
            raise TraceFormatError(f"{path}: empty model file")
        n = parse_count(tokens[0], path)
        expected = 2 * n + 2 * n * n
        values = parse_floats(tokens[1:], path)
        if len(values) != expected:
            raise TraceFormatError(
                f"{path}: expected {expected} parameter values for "
                f"{n} species, got {len(values)}"
            )

        data = np.array(values, dtype=np.float64)
        model = cls(n)
        model.set_parameters(
            growth_rate=data[:n],
            self_limitation=data[n:2 * n],
            predation_loss=data[2 * n:2 * n + n * n].reshape(n, n),
            predation_gain=data[2 * n + n * n:].reshape(n, n),
        )
        logger.info(f"Read {n}-species model from {path}")
        return model

    # ── dimensions ──────────────────────────────────────────────────

    def set_number_of_species(self, n_species: int) -> None:
        """Resize the model; all parameters are reset to zero."""
        if n_species < 0:
            raise InvalidParameterError(
                f"n_species must be >= 0, got {n_species}"
            )
        n = int(n_species)
        self._n = n
        self._r = np.zeros(n, dtype=np.float64)
        self._d = np.zeros(n, dtype=np.float64)
        self._beta = np.zeros((n, n), dtype=np.float64)
        self._gamma = np.zeros((n, n), dtype=np.float64)

    @property
    def n_species(self) -> int:
        return self._n

    def _check_species(self, index: int, role: str = "Species") -> None:
        if not 0 <= index < self._n:
            raise SpeciesIndexError(
                f"{role} index {index} out of bounds for {self._n} species"
            )

    def _check_pair(self, predator: int, prey: int) -> Tuple[int, int]:
        self._check_species(predator, "Predator")
        self._check_species(prey, "Prey")
        return storage_index(predator, prey)

    # ── per-coefficient accessors ───────────────────────────────────

    def get_growth_rate(self, species: int) -> float:
        self._check_species(species)
        return float(self._r[species])

    def set_growth_rate(self, species: int, growth_rate: float) -> None:
        self._check_species(species)
        self._r[species] = growth_rate

    def get_self_limitation(self, species: int) -> float:
        self._check_species(species)
        return float(self._d[species])

    def set_self_limitation(self, species: int, self_limitation: float) -> None:
        self._check_species(species)
        if not self_limitation >= 0.0:
            raise InvalidParameterError(
                f"self-limitation must be non-negative, got {self_limitation}"
            )
        self._d[species] = self_limitation

    def get_predation_loss(self, predator: int, prey: int) -> float:
        return float(self._beta[self._check_pair(predator, prey)])

    def set_predation_loss(self, predator: int, prey: int, loss: float) -> None:
        """Rate at which `predator` reduces the growth of `prey`."""
        idx = self._check_pair(predator, prey)
        if not loss >= 0.0:
            raise InvalidParameterError(
                f"loss coefficient must be non-negative, got {loss}"
            )
        self._beta[idx] = loss

    def get_predation_gain(self, predator: int, prey: int) -> float:
        return float(self._gamma[self._check_pair(predator, prey)])

    def set_predation_gain(self, predator: int, prey: int, gain: float) -> None:
        """Rate at which consuming `prey` increases the growth of `predator`."""
        idx = self._check_pair(predator, prey)
        if not gain >= 0.0:
            raise InvalidParameterError(
                f"gain coefficient must be non-negative, got {gain}"
            )
        self._gamma[idx] = gain

    # ── bulk access ─────────────────────────────────────────────────

    def set_parameters(
        self,
        growth_rate: Sequence[float],
        predation_loss: Sequence[Sequence[float]],
        self_limitation: Sequence[float],
        predation_gain: Sequence[Sequence[float]],
    ) -> None:
        """Replace every parameter at once.

        Matrices are given in storage order (beta[prey][predator],
        gamma[prey][predator]), as in the parameter file. All dimensions
        are checked before anything is written.

        Raises:
            InvalidParameterError: On any dimension mismatch or a negative
                self-limitation/loss/gain value. The model is unchanged.
        """
        n = self._n
        try:
            r = np.array(growth_rate, dtype=np.float64)
            d = np.array(self_limitation, dtype=np.float64)
            beta = np.array(predation_loss, dtype=np.float64)
            gamma = np.array(predation_gain, dtype=np.float64)
        except (TypeError, ValueError):
            # ragged or non-numeric input
            raise InvalidParameterError(
                f"parameter dimensions do not match {n} species"
            ) from None
        if n == 0 and beta.size == 0 and gamma.size == 0:
            # [] has shape (0,), not (0, 0)
            beta, gamma = beta.reshape(0, 0), gamma.reshape(0, 0)
        if (r.shape != (n,) or d.shape != (n,)
                or beta.shape != (n, n) or gamma.shape != (n, n)):
            raise InvalidParameterError(
                f"parameter dimensions do not match {n} species"
            )

        for name, arr in (('self_limitation', d), ('predation_loss', beta),
                          ('predation_gain', gamma)):
            if not np.all(arr >= 0.0):
                raise InvalidParameterError(f"{name} must be non-negative")

        self._r, self._d, self._beta, self._gamma = r, d, beta, gamma

    @property
    def growth_rates(self) -> np.ndarray:
        return self._r.copy()

    @property
    def self_limitations(self) -> np.ndarray:
        return self._d.copy()

    @property
    def loss_matrix(self) -> np.ndarray:
        """Copy of beta in storage order: [prey, predator]."""
        return self._beta.copy()

    @property
    def gain_matrix(self) -> np.ndarray:
        """Copy of gamma in storage order: [prey, predator]."""
        return self._gamma.copy()

    def copy(self) -> 'LotkaVolterraModel':
        clone = type(self)(self._n)
        clone.set_parameters(self._r, self._beta, self._d, self._gamma)
        return clone

    # ── dynamics ────────────────────────────────────────────────────

    def compute_derivatives(self, populations: Sequence[float]) -> np.ndarray:
        """dP/dt for the given population vector.

        Pure: the model is not modified. Negative populations are
        evaluated as-is.

        Raises:
            ContractError: If len(populations) != n_species.
        """
        p = np.asarray(populations, dtype=np.float64)
        if p.shape != (self._n,):
            raise ContractError(
                f"population vector has shape {p.shape}, expected ({self._n},)"
            )
        # gain: Σ_j gamma[j, i] p_j ; loss: Σ_j beta[i, j] p_j
        interaction = self._gamma.T @ p - self._beta @ p
        return p * (self._r - p * self._d + interaction)

    def integrate(self, initial_populations: Sequence[float],
                  total_time: float, dt: float) -> LotkaVolterraTrace:
        """Integrate from `initial_populations`; see integrator.integrate()."""
        return integrate(self, initial_populations, total_time, dt)

    # ── file I/O ────────────────────────────────────────────────────

    def save_to_file(self, path: PathLike) -> None:
        """Write the parameters in the format read by from_file()."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(f"{self._n}\n")
            f.write(format_row(self._r) + "\n")
            f.write(format_row(self._d) + "\n")
            for row in self._beta:
                f.write(format_row(row) + "\n")
            for row in self._gamma:
                f.write(format_row(row) + "\n")
        logger.info(f"Saved {self._n}-species model to {path}")

    def __str__(self) -> str:
        lines = [
            f"Lotka-Volterra model with {self._n} species",
            "Growth rates (r):",
            format_row(self._r),
            "Self-limitation (d):",
            format_row(self._d),
            "Predation loss matrix (beta):",
        ]
        lines.extend(format_row(row) for row in self._beta)
        lines.append("Predation gain matrix (gamma):")
        lines.extend(format_row(row) for row in self._gamma)
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return f"LotkaVolterraModel(n_species={self._n})"
