"""Parameter-estimation boundary.

The optimizer that fits model parameters to observed data lives outside
this package. It only needs to:

  1. turn a flat candidate vector into a model (model_from_vector),
  2. integrate it from the observed initial state,
  3. score the result against the observed trace (trace_error).

evaluate_parameters() chains the three and maps rejected candidates
(negative coefficients, wrong vector length) to an infinite error so they
rank last without stopping the search.

Vector layout for n species (length 2n + 2n²):

    [ r_0..r_{n-1} | d_0..d_{n-1} | beta (n×n, row-major storage) | gamma (n×n) ]
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from lotka_volterra.errors import ContractError, InvalidParameterError
from lotka_volterra.integrator import integrate
from lotka_volterra.model import LotkaVolterraModel
from lotka_volterra.trace import LotkaVolterraTrace

logger = logging.getLogger(__name__)


def n_parameters(n_species: int) -> int:
    """Length of the flat parameter vector for n_species."""
    return 2 * n_species + 2 * n_species * n_species


def model_from_vector(vector: Sequence[float], n_species: int) -> LotkaVolterraModel:
    """Build a model from a flat parameter vector.

    Raises:
        InvalidParameterError: Wrong vector length or a negative
            self-limitation/loss/gain entry.
    """
    v = np.asarray(vector, dtype=np.float64).ravel()
    n = n_species
    if v.size != n_parameters(n):
        raise InvalidParameterError(
            f"parameter vector has {v.size} entries, expected "
            f"{n_parameters(n)} for {n} species"
        )
    model = LotkaVolterraModel(n)
    model.set_parameters(
        growth_rate=v[:n],
        self_limitation=v[n:2 * n],
        predation_loss=v[2 * n:2 * n + n * n].reshape(n, n),
        predation_gain=v[2 * n + n * n:].reshape(n, n),
    )
    return model


def model_to_vector(model: LotkaVolterraModel) -> np.ndarray:
    """Inverse of model_from_vector()."""
    return np.concatenate([
        model.growth_rates,
        model.self_limitations,
        model.loss_matrix.ravel(),
        model.gain_matrix.ravel(),
    ])


def trace_error(
    observed: LotkaVolterraTrace,
    simulated: LotkaVolterraTrace,
    times: Optional[Sequence[float]] = None,
) -> float:
    """Sum of squared population differences between two traces.

    Both traces are sampled with get_state_at_time() at `times`
    (default: the observed trace's recorded times).

    Raises:
        ContractError: If the species counts differ or a trace is empty.
    """
    if observed.n_species != simulated.n_species:
        raise ContractError(
            f"cannot compare traces of {observed.n_species} and "
            f"{simulated.n_species} species"
        )
    if times is None:
        times = observed.times
    obs = observed.resample(times)
    sim = simulated.resample(times)
    return float(np.sum((obs - sim) ** 2))


def evaluate_parameters(
    vector: Sequence[float],
    observed: LotkaVolterraTrace,
    dt: float = 1.0,
) -> float:
    """Objective value of a candidate parameter vector against observed data.

    Integrates from the observed state at t = 0 up to the observed max
    time. Candidates rejected by the model's validation score math.inf.
    """
    try:
        model = model_from_vector(vector, observed.n_species)
    except InvalidParameterError as e:
        logger.debug(f"Rejected candidate: {e}")
        return math.inf
    simulated = integrate(
        model, observed.get_state_at_time(0.0), observed.max_time, dt
    )
    return trace_error(observed, simulated)
