"""Tests for lotka_volterra.run — config-driven runs and output files."""

import logging

import numpy as np
import pytest
import yaml

from lotka_volterra.config import default_config
from lotka_volterra.model import LotkaVolterraModel
from lotka_volterra.run import (
    RunResult,
    build_model,
    run_config_file,
    run_simulation,
    save_run,
)
from lotka_volterra.trace import LotkaVolterraTrace


@pytest.fixture
def short_config(tmp_path):
    config = default_config()
    config.simulation.total_time = 2.0
    config.simulation.dt = 0.01
    config.simulation.initial_populations = [10.0, 5.0]
    config.output.directory = str(tmp_path / "out")
    return config


class TestBuildModel:
    def test_inline(self):
        model = build_model(default_config())
        assert model.n_species == 2
        assert model.get_predation_loss(predator=1, prey=0) == 0.1
        assert model.get_predation_gain(predator=1, prey=0) == 0.02

    def test_from_parameter_file(self, tmp_path):
        source = LotkaVolterraModel(3)
        source.set_growth_rate(2, 0.7)
        source.set_predation_gain(0, 2, 0.3)
        path = tmp_path / "model.txt"
        source.save_to_file(path)

        config = default_config()
        config.model.parameter_file = str(path)
        model = build_model(config)
        assert model.n_species == 3
        assert model.get_growth_rate(2) == 0.7
        assert model.get_predation_gain(0, 2) == 0.3


class TestRunSimulation:
    def test_default_run(self, short_config):
        result = run_simulation(short_config)
        assert isinstance(result, RunResult)
        assert not result.diverged
        assert result.trace.max_time >= 2.0
        np.testing.assert_array_equal(result.trace.get_state_at_time(0.0), [10.0, 5.0])
        assert result.wall_time >= 0.0

    def test_default_initial_populations(self, short_config):
        short_config.simulation.initial_populations = None
        result = run_simulation(short_config)
        np.testing.assert_array_equal(result.trace.get_state_at_time(0.0), [1.0, 1.0])

    def test_exact_steps(self, short_config):
        short_config.simulation.exact_steps = True
        result = run_simulation(short_config)
        assert len(result.trace) == 201

    def test_divergence_reported(self, short_config, caplog):
        short_config.model.growth_rate = [10.0, -1.0]
        short_config.simulation.total_time = 5.0
        short_config.simulation.dt = 0.1
        with caplog.at_level(logging.WARNING, logger="lotka_volterra"):
            result = run_simulation(short_config)
        assert result.diverged
        assert "diverged" in caplog.text
        assert np.all(np.isfinite(result.trace.populations))


class TestSaveRun:
    def test_verbatim_trace(self, short_config):
        result = run_simulation(short_config)
        paths = save_run(result, short_config)
        assert paths['trace'].exists()
        assert paths['model'].exists()
        loaded = LotkaVolterraTrace.from_file(paths['trace'])
        assert len(loaded) == len(result.trace)
        reloaded_model = LotkaVolterraModel.from_file(paths['model'])
        assert reloaded_model.get_predation_loss(1, 0) == 0.1

    def test_resampled_trace(self, short_config):
        short_config.output.sample_step = 0.5
        result = run_simulation(short_config)
        paths = save_run(result, short_config)
        loaded = LotkaVolterraTrace.from_file(paths['trace'])
        np.testing.assert_allclose(loaded.times, [0.0, 0.5, 1.0, 1.5, 2.0])

    def test_plot(self, short_config):
        short_config.output.plot = True
        result = run_simulation(short_config)
        paths = save_run(result, short_config)
        assert paths['plot'].exists()
        assert paths['plot'].suffix == '.png'
        assert result.paths == paths


class TestRunConfigFile:
    def test_end_to_end(self, tmp_path):
        out = tmp_path / "results"
        content = {
            'simulation': {'total_time': 1.0, 'dt': 0.1,
                           'initial_populations': [10.0, 5.0]},
            'output': {'directory': str(out), 'sample_step': 0.25},
            'logging': {'level': 'WARNING'},
        }
        path = tmp_path / "run.yaml"
        with open(path, 'w') as f:
            yaml.dump(content, f)

        result = run_config_file(str(path))
        assert (out / "trace.txt").exists()
        assert (out / "model.txt").exists()
        assert len(LotkaVolterraTrace.from_file(out / "trace.txt")) == 5
        assert result.trace.n_species == 2
