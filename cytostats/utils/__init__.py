"""Utility functions for cytostats."""

from .stats import (
    arithmetic_mean,
    coefficient_of_variation,
    geometric_mean,
    kde_mode,
    median,
    nrd0_bandwidth,
)

__all__ = [
    "arithmetic_mean",
    "coefficient_of_variation",
    "geometric_mean",
    "kde_mode",
    "median",
    "nrd0_bandwidth",
]
