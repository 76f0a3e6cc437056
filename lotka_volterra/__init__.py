"""Generalized Lotka-Volterra predation dynamics.

A small numerical engine for multi-species predator-prey systems:
  - Dynamics model: growth, self-limitation, pairwise predation loss/gain
  - Fixed-step RK4 integration with an overflow freeze
  - Time-indexed population traces with interpolated queries
  - Plain-text model and trace files
  - Objective-function helpers for external parameter estimation
"""

__version__ = "0.1.0"
