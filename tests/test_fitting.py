"""Tests for lotka_volterra.fitting — parameter vectors and trace comparison."""

import math

import numpy as np
import pytest

from lotka_volterra.errors import ContractError, InvalidParameterError
from lotka_volterra.fitting import (
    evaluate_parameters,
    model_from_vector,
    model_to_vector,
    n_parameters,
    trace_error,
)
from lotka_volterra.integrator import integrate
from lotka_volterra.trace import LotkaVolterraTrace


# r0, r1 | d0, d1 | beta (storage) | gamma (storage)
TRUE_VECTOR = [1.0, -1.0, 0.0, 0.0, 0.0, 0.1, 0.0, 0.0, 0.0, 0.02, 0.0, 0.0]


@pytest.fixture
def observed() -> LotkaVolterraTrace:
    model = model_from_vector(TRUE_VECTOR, 2)
    return integrate(model, [10.0, 5.0], 10.0, 1.0)


class TestParameterVector:
    def test_n_parameters(self):
        assert n_parameters(0) == 0
        assert n_parameters(1) == 4
        assert n_parameters(2) == 12
        assert n_parameters(3) == 24

    def test_layout(self):
        model = model_from_vector(TRUE_VECTOR, 2)
        assert model.get_growth_rate(0) == 1.0
        assert model.get_growth_rate(1) == -1.0
        assert model.get_predation_loss(predator=1, prey=0) == 0.1
        assert model.get_predation_gain(predator=1, prey=0) == 0.02

    def test_round_trip(self):
        rng = np.random.default_rng(5)
        vec = rng.uniform(0.0, 1.0, n_parameters(3))
        vec[:3] -= 0.5   # growth rates may be negative
        np.testing.assert_array_equal(model_to_vector(model_from_vector(vec, 3)), vec)

    def test_wrong_length(self):
        with pytest.raises(InvalidParameterError, match="expected 12"):
            model_from_vector(TRUE_VECTOR[:-1], 2)

    def test_negative_coefficient(self):
        vec = list(TRUE_VECTOR)
        vec[5] = -0.1
        with pytest.raises(InvalidParameterError):
            model_from_vector(vec, 2)


class TestTraceError:
    def test_identical_traces(self, observed):
        assert trace_error(observed, observed) == 0.0

    def test_known_value(self):
        a = LotkaVolterraTrace(2)
        b = LotkaVolterraTrace(2)
        for t in (0.0, 1.0, 2.0):
            a.add_state(t, [1.0, 1.0])
            b.add_state(t, [2.0, 1.0 + t])
        # (1 + 0) + (1 + 1) + (1 + 4)
        assert trace_error(a, b) == pytest.approx(8.0)

    def test_custom_times(self):
        a = LotkaVolterraTrace(1)
        b = LotkaVolterraTrace(1)
        a.add_state(0.0, [0.0])
        a.add_state(2.0, [0.0])
        b.add_state(0.0, [0.0])
        b.add_state(2.0, [4.0])
        # b at t=1 interpolates to 2
        assert trace_error(a, b, times=[1.0]) == pytest.approx(4.0)

    def test_species_mismatch(self, observed):
        with pytest.raises(ContractError):
            trace_error(observed, LotkaVolterraTrace(3))


class TestEvaluateParameters:
    def test_true_parameters_score_zero(self, observed):
        assert evaluate_parameters(TRUE_VECTOR, observed, dt=1.0) == 0.0

    def test_perturbed_parameters_score_worse(self, observed):
        vec = list(TRUE_VECTOR)
        vec[0] = 1.2
        assert evaluate_parameters(vec, observed, dt=1.0) > 0.0

    def test_rejected_candidate_scores_inf(self, observed):
        vec = list(TRUE_VECTOR)
        vec[9] = -1.0
        assert evaluate_parameters(vec, observed) == math.inf

    def test_diverging_candidate_stays_finite(self, observed):
        vec = list(TRUE_VECTOR)
        vec[0] = 50.0
        score = evaluate_parameters(vec, observed, dt=1.0)
        assert math.isfinite(score)
        assert score > 0.0
