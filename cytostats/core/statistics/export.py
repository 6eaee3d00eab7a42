"""Export functions for statistics results.

This module provides functions to export statistics results to CSV and
their provenance to JSON.
"""

import json
from pathlib import Path
from typing import Dict, Optional

from ...io.csv import save_statistics
from .engine import StatisticsResult


def export_statistics(
    result: StatisticsResult,
    output_dir: Path,
    prefix: str = "",
    name: Optional[str] = None,
) -> Path:
    """Export the formatted statistics table.

    Parameters
    ----------
    result : StatisticsResult
        Statistics result
    output_dir : Path
        Output directory
    prefix : str
        File prefix
    name : str, optional
        File name; defaults to "<statistic>_<format>.csv"

    Returns
    -------
    Path
        Output file path
    """
    output_dir = Path(output_dir)
    filename = name or f"{result.kind.value}_{result.format}.csv"
    if prefix:
        filename = f"{prefix}{filename}"
    return save_statistics(result.data, output_dir / filename)


def export_provenance(
    result: StatisticsResult,
    output_dir: Path,
    prefix: str = "",
) -> Path:
    """Export execution provenance to JSON.

    Parameters
    ----------
    result : StatisticsResult
        Statistics result
    output_dir : Path
        Output directory
    prefix : str
        File prefix

    Returns
    -------
    Path
        Output file path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    filename = f"{prefix}provenance.json" if prefix else "provenance.json"
    path = output_dir / filename

    with open(path, "w") as f:
        json.dump(result.provenance, f, indent=2, default=str)

    return path


def export_all(
    result: StatisticsResult,
    output_dir: Path,
    prefix: str = "",
) -> Dict[str, Path]:
    """Export the statistics table and provenance.

    Returns
    -------
    Dict[str, Path]
        Mapping of output type to file path
    """
    return {
        "statistics": export_statistics(result, output_dir, prefix),
        "provenance": export_provenance(result, output_dir, prefix),
    }
