"""Trace visualizations.

Every function:
  - Accepts a LotkaVolterraTrace as input
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared dark theme below

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional, Sequence, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

if TYPE_CHECKING:
    from lotka_volterra.trace import LotkaVolterraTrace


# ═══════════════════════════════════════════════════════════════════════
# THEME
# ═══════════════════════════════════════════════════════════════════════

DARK_BG = '#1a1a2e'
DARK_PANEL = '#16213e'
TEXT_COLOR = '#e0e0e0'
GRID_COLOR = '#2a2a4a'

SPECIES_COLORS = [
    '#e94560', '#48c9b0', '#f39c12', '#3498db', '#2ecc71',
    '#533483', '#e74c3c', '#f1c40f', '#1abc9c', '#9b59b6',
]


def apply_dark_theme(fig=None, ax=None):
    """Apply dark theme to a matplotlib Figure and/or Axes."""
    if fig is not None:
        fig.patch.set_facecolor(DARK_BG)
    if ax is not None:
        ax.set_facecolor(DARK_PANEL)
        ax.tick_params(colors=TEXT_COLOR)
        ax.xaxis.label.set_color(TEXT_COLOR)
        ax.yaxis.label.set_color(TEXT_COLOR)
        ax.title.set_color(TEXT_COLOR)
        for spine in ax.spines.values():
            spine.set_color(GRID_COLOR)
        ax.grid(True, color=GRID_COLOR, alpha=0.3, linewidth=0.5)


def dark_figure(figsize=(10, 6)):
    """Create a single-Axes Figure with the dark theme already applied."""
    fig, ax = plt.subplots(figsize=figsize)
    apply_dark_theme(fig=fig, ax=ax)
    return fig, ax


def save_figure(fig, save_path, dpi=150):
    """Save a figure with tight layout and dark background."""
    fig.tight_layout()
    fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                edgecolor='none', bbox_inches='tight')
    plt.close(fig)


def _species_color(i: int) -> str:
    return SPECIES_COLORS[i % len(SPECIES_COLORS)]


def _legend(ax):
    ax.legend(facecolor=DARK_PANEL, edgecolor=GRID_COLOR,
              labelcolor=TEXT_COLOR, fontsize=10)


# ═══════════════════════════════════════════════════════════════════════
# 1. POPULATION TRAJECTORIES
# ═══════════════════════════════════════════════════════════════════════

def plot_trace(
    trace: 'LotkaVolterraTrace',
    labels: Optional[Sequence[str]] = None,
    observed: Optional['LotkaVolterraTrace'] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Population of every species over time.

    Args:
        trace: Simulated trace (lines).
        labels: Species names; defaults to 'Species i'.
        observed: Optional observed trace drawn as markers on top.
        save_path: Optional path to save the figure.

    Returns:
        matplotlib Figure.
    """
    n = trace.n_species
    if labels is None:
        labels = [f'Species {i}' for i in range(n)]
    fig, ax = dark_figure()

    times = trace.times
    pops = trace.populations
    for i in range(n):
        ax.plot(times, pops[:, i], color=_species_color(i), linewidth=2,
                label=labels[i], zorder=3)

    if observed is not None:
        obs_pops = observed.populations
        for i in range(min(n, observed.n_species)):
            ax.scatter(observed.times, obs_pops[:, i], color=_species_color(i),
                       s=18, marker='o', edgecolors=TEXT_COLOR,
                       linewidths=0.5, label=f'{labels[i]} (observed)',
                       zorder=4)

    ax.set_xlabel('Time', fontsize=12)
    ax.set_ylabel('Population', fontsize=12)
    ax.set_title('Population Dynamics', fontsize=14, fontweight='bold')
    if n:
        _legend(ax)
    if len(times):
        ax.set_xlim(times[0], times[-1])
    ax.set_ylim(bottom=0)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 2. PHASE PORTRAIT
# ═══════════════════════════════════════════════════════════════════════

def plot_phase_portrait(
    trace: 'LotkaVolterraTrace',
    species_x: int = 0,
    species_y: int = 1,
    labels: Optional[Sequence[str]] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Trajectory of one species against another, start and end marked."""
    pops = trace.populations
    if labels is None:
        labels = [f'Species {i}' for i in range(trace.n_species)]
    x, y = pops[:, species_x], pops[:, species_y]
    fig, ax = dark_figure(figsize=(7, 7))

    ax.plot(x, y, color=SPECIES_COLORS[0], linewidth=1.5, zorder=3)
    if len(x):
        ax.scatter([x[0]], [y[0]], color=SPECIES_COLORS[1], s=50,
                   label='start', zorder=4)
        ax.scatter([x[-1]], [y[-1]], color=SPECIES_COLORS[2], s=50,
                   label='end', zorder=4)
        _legend(ax)

    ax.set_xlabel(labels[species_x], fontsize=12)
    ax.set_ylabel(labels[species_y], fontsize=12)
    ax.set_title('Phase Portrait', fontsize=14, fontweight='bold')
    ax.set_xlim(left=0)
    ax.set_ylim(bottom=0)

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_residuals(
    observed: 'LotkaVolterraTrace',
    simulated: 'LotkaVolterraTrace',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Simulated minus observed populations at the observed times."""
    times = observed.times
    resid = simulated.resample(times) - observed.populations
    fig, ax = dark_figure()
    for i in range(observed.n_species):
        ax.plot(times, resid[:, i], color=_species_color(i), linewidth=1.5,
                marker='.', label=f'Species {i}')
    ax.axhline(0.0, color=TEXT_COLOR, linewidth=0.8, alpha=0.6)
    ax.set_xlabel('Time', fontsize=12)
    ax.set_ylabel('Simulated − observed', fontsize=12)
    ax.set_title(f'Residuals (SSE = {float(np.sum(resid ** 2)):.4g})',
                 fontsize=14, fontweight='bold')
    if observed.n_species:
        _legend(ax)

    if save_path:
        save_figure(fig, save_path)
    return fig
