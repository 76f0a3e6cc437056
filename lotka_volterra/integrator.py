"""Fixed-step RK4 integration of a Lotka-Volterra model.

rk4_step() advances a population vector by one step of classical
fourth-order Runge-Kutta:

    k1 = f(P)
    k2 = f(P + dt/2 · k1)
    k3 = f(P + dt/2 · k2)
    k4 = f(P + dt · k3)
    P' = P + dt/6 · (k1 + 2·k2 + 2·k3 + k4)

and clamps negative components of P' to 0.

integrate() loops rk4_step() from t = 0 and records every state in a
LotkaVolterraTrace. If any population exceeds POPULATION_UPPER_BOUND (or a
step turns non-finite), stepping stops for good and the frozen state is
re-recorded at every remaining time point, so the trace always ends at
total_time and never holds NaN/inf.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

import numpy as np

from lotka_volterra.errors import ContractError, InvalidParameterError
from lotka_volterra.trace import LotkaVolterraTrace

if TYPE_CHECKING:
    from lotka_volterra.model import LotkaVolterraModel

logger = logging.getLogger(__name__)


# Upper bound of population sizes; guards against overflow under
# pathological parameters.
POPULATION_UPPER_BOUND = 1e6


def rk4_step(
    model: 'LotkaVolterraModel',
    populations: Sequence[float],
    dt: float,
    scratch: Optional[np.ndarray] = None,
) -> np.ndarray:
    """One RK4 step of size dt. Returns a new array; inputs are untouched.

    Args:
        model: Model supplying compute_derivatives(). Not modified.
        populations: Current populations, length model.n_species.
        dt: Step size.
        scratch: Optional (n,) work buffer for the intermediate
            populations. Owned by the caller; must not be shared between
            concurrently running steps.

    Raises:
        ContractError: If len(populations) != model.n_species.
    """
    p = np.asarray(populations, dtype=np.float64)
    n = model.n_species
    if p.shape != (n,):
        raise ContractError(
            f"population vector has shape {p.shape}, expected ({n},)"
        )
    tmp = np.empty(n, dtype=np.float64) if scratch is None else scratch

    half_dt = 0.5 * dt
    k1 = model.compute_derivatives(p)
    np.multiply(k1, half_dt, out=tmp)
    tmp += p
    k2 = model.compute_derivatives(tmp)
    np.multiply(k2, half_dt, out=tmp)
    tmp += p
    k3 = model.compute_derivatives(tmp)
    np.multiply(k3, dt, out=tmp)
    tmp += p
    k4 = model.compute_derivatives(tmp)

    new_p = p + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)
    new_p[new_p < 0.0] = 0.0
    return new_p


def _step_count(total_time: float, dt: float) -> int:
    """Steps needed to reach total_time; a ratio within rounding of an
    integer counts as that integer (0.07 / 0.01 -> 7, not 8)."""
    if not total_time > 0:
        return 0
    ratio = total_time / dt
    if not math.isfinite(ratio):
        raise InvalidParameterError(
            f"exact_steps needs a finite total_time, got {total_time}"
        )
    nearest = round(ratio)
    if math.isclose(ratio, nearest, rel_tol=1e-9):
        return int(nearest)
    return math.ceil(ratio)


def integrate_checked(
    model: 'LotkaVolterraModel',
    initial_populations: Sequence[float],
    total_time: float,
    dt: float,
    *,
    upper_bound: float = POPULATION_UPPER_BOUND,
    exact_steps: bool = False,
) -> Tuple[LotkaVolterraTrace, Optional[float]]:
    """Integrate and also report when stepping was frozen.

    Returns:
        (trace, diverged_at) where diverged_at is the time of the first
        state that exceeded upper_bound (or at which a step went
        non-finite), or None if the run stayed bounded.

    See integrate() for the arguments.
    """
    if not dt > 0:
        raise InvalidParameterError(f"dt must be > 0, got {dt}")
    n = model.n_species
    populations = np.array(initial_populations, dtype=np.float64)
    if populations.shape != (n,):
        raise ContractError(
            f"initial population vector has shape {populations.shape}, "
            f"expected ({n},)"
        )

    trace = LotkaVolterraTrace(n)
    time = 0.0
    trace.add_state(time, populations)

    n_steps = _step_count(total_time, dt) if exact_steps else 0
    scratch = np.empty(n, dtype=np.float64)
    valid = True
    diverged_at = None
    k = 0
    while (k < n_steps) if exact_steps else (time < total_time):
        k += 1
        time = k * dt if exact_steps else time + dt
        if valid:
            with np.errstate(over='ignore', invalid='ignore'):
                new_p = rk4_step(model, populations, dt, scratch)
            if not np.all(np.isfinite(new_p)):
                # keep the last finite state
                valid = False
            else:
                populations = new_p
                valid = not np.any(populations > upper_bound)
            if not valid:
                diverged_at = time
                logger.debug(
                    f"Populations exceeded {upper_bound:g} at t={time:g}; "
                    f"freezing state for the remaining trace"
                )
        trace.add_state(time, populations)

    return trace, diverged_at


def integrate(
    model: 'LotkaVolterraModel',
    initial_populations: Sequence[float],
    total_time: float,
    dt: float,
    *,
    upper_bound: float = POPULATION_UPPER_BOUND,
    exact_steps: bool = False,
) -> LotkaVolterraTrace:
    """Integrate a model from t = 0 to total_time with fixed step dt.

    The initial state is recorded at t = 0. By default time advances by
    accumulation (t += dt while t < total_time), so the last recorded time
    may overshoot total_time by less than dt and carries the usual
    floating-point drift. With exact_steps=True, time is k·dt for
    k = 1..ceil(total_time/dt) instead, with a ratio within rounding of
    an integer taken as that integer.

    Args:
        model: The model to integrate. Not modified.
        initial_populations: Populations at t = 0, length n_species.
        total_time: Integration horizon. <= 0 yields a one-state trace.
        dt: Step size, must be > 0.
        upper_bound: Population size beyond which stepping freezes.
        exact_steps: Use integer step counting instead of accumulation.

    Returns:
        A new LotkaVolterraTrace owned by the caller.

    Raises:
        InvalidParameterError: If dt <= 0.
        ContractError: If len(initial_populations) != n_species.
    """
    trace, _ = integrate_checked(
        model, initial_populations, total_time, dt,
        upper_bound=upper_bound, exact_steps=exact_steps,
    )
    return trace
