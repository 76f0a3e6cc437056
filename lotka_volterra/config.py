"""Configuration system for Lotka-Volterra runs.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

Sections map 1:1 to YAML top-level keys; unknown keys are ignored.
Interaction matrices are given in storage order (beta[prey][predator],
gamma[prey][predator]), the same layout as the model parameter file.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from lotka_volterra.integrator import POPULATION_UPPER_BOUND


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Integration horizon, step and initial state."""
    total_time: float = 100.0
    dt: float = 0.01
    upper_bound: float = POPULATION_UPPER_BOUND
    exact_steps: bool = False     # integer step counting instead of t += dt
    initial_populations: Optional[List[float]] = None  # None = all ones


@dataclass
class ModelSection:
    """Model parameters: a parameter file, or inline arrays."""
    parameter_file: Optional[str] = None
    growth_rate: List[float] = field(default_factory=lambda: [1.0, -1.0])
    self_limitation: List[float] = field(default_factory=lambda: [0.0, 0.0])
    # storage order: [prey][predator]
    predation_loss: List[List[float]] = field(
        default_factory=lambda: [[0.0, 0.1], [0.0, 0.0]]
    )
    predation_gain: List[List[float]] = field(
        default_factory=lambda: [[0.0, 0.02], [0.0, 0.0]]
    )


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    trace_file: str = "trace.txt"
    model_file: str = "model.txt"
    sample_step: Optional[float] = None   # None = write every state verbatim
    plot: bool = False


@dataclass
class LoggingSection:
    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class RunConfig:
    """Complete run configuration.

    Load from YAML via `load_config()`.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    model: ModelSection = field(default_factory=ModelSection)
    output: OutputSection = field(default_factory=OutputSection)
    logging: LoggingSection = field(default_factory=LoggingSection)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> RunConfig:
    """Convert a merged YAML dict to a RunConfig."""
    section_map = {
        'simulation': SimulationSection,
        'model': ModelSection,
        'output': OutputSection,
        'logging': LoggingSection,
    }
    sections = {}
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return RunConfig(**sections)


def _check_matrix(name: str, matrix: List[List[float]], n: int) -> None:
    if (not isinstance(matrix, (list, tuple)) or len(matrix) != n
            or any(not isinstance(row, (list, tuple)) or len(row) != n
                   for row in matrix)):
        raise ValueError(f"model.{name} must be a {n}x{n} matrix")
    if any(v < 0 for row in matrix for v in row):
        raise ValueError(f"model.{name} must be non-negative")


def validate_config(config: RunConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Step size and sampling step are positive
      - Inline model arrays are consistently sized and sign-valid
      - Initial populations match the species count and are non-negative
    """
    sim = config.simulation
    if not (isinstance(sim.dt, (int, float)) and sim.dt > 0):
        raise ValueError(f"simulation.dt must be positive, got {sim.dt}")
    if not math.isfinite(sim.total_time):
        raise ValueError(
            f"simulation.total_time must be finite, got {sim.total_time}"
        )
    if not sim.upper_bound > 0:
        raise ValueError(
            f"simulation.upper_bound must be positive, got {sim.upper_bound}"
        )
    if sim.initial_populations is not None and any(
            p < 0 for p in sim.initial_populations):
        raise ValueError("simulation.initial_populations must be non-negative")

    m = config.model
    if m.parameter_file is None:
        n = len(m.growth_rate)
        if len(m.self_limitation) != n:
            raise ValueError(
                f"model.self_limitation must have {n} elements, "
                f"got {len(m.self_limitation)}"
            )
        if any(v < 0 for v in m.self_limitation):
            raise ValueError("model.self_limitation must be non-negative")
        _check_matrix('predation_loss', m.predation_loss, n)
        _check_matrix('predation_gain', m.predation_gain, n)
        if (sim.initial_populations is not None
                and len(sim.initial_populations) != n):
            raise ValueError(
                f"simulation.initial_populations must have {n} elements, "
                f"got {len(sim.initial_populations)}"
            )

    out = config.output
    if out.sample_step is not None and not out.sample_step > 0:
        raise ValueError(
            f"output.sample_step must be positive, got {out.sample_step}"
        )

    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if config.logging.level.upper() not in valid_levels:
        raise ValueError(
            f"logging.level must be one of {valid_levels}, "
            f"got '{config.logging.level}'"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> RunConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides.
    Each layer overrides only the fields it specifies. A relative
    model.parameter_file is resolved against the base file's directory.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, sweep_overrides)

    config = _yaml_to_config(config_dict)
    param_file = config.model.parameter_file
    if param_file is not None and not Path(param_file).is_absolute():
        config.model.parameter_file = str(base_path.parent / param_file)
    validate_config(config)
    return config


def default_config() -> RunConfig:
    """Return a RunConfig with all default values."""
    config = RunConfig()
    validate_config(config)
    return config
