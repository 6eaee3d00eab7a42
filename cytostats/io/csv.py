"""CSV I/O utilities for cytostats.

Reads sample registries and per-sample event tables, and writes result
tables as comma-separated text with a header row and no index column.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_EXTENSION = ".csv"

# Columns a sample registry must provide
DEFAULT_REQUIRED_REGISTRY_COLUMNS = [
    "name",
    "events_path",
]


def ensure_output_dir(path: PathLike) -> Path:
    """Create the directory at path if it does not exist and return it.

    Parameters
    ----------
    path : PathLike
        Directory path to create.

    Returns
    -------
    Path
        The created/existing directory path.
    """
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def with_default_extension(path: PathLike, extension: str = DEFAULT_EXTENSION) -> Path:
    """Append ``extension`` when path has none.

    ``"stats"`` becomes ``"stats.csv"``; ``"stats.txt"`` is returned as is.

    Parameters
    ----------
    path : PathLike
        Caller-supplied output path.
    extension : str
        Extension to append, with or without the leading dot.

    Returns
    -------
    Path
        Path carrying an extension.
    """
    output_path = Path(path)
    if output_path.suffix:
        return output_path
    if not extension.startswith("."):
        extension = f".{extension}"
    return output_path.with_name(output_path.name + extension)


def write_dataframe(df: pd.DataFrame, path: PathLike, *, index: bool = False) -> Path:
    """Write DataFrame to path ensuring the parent directory exists.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame to write.
    path : PathLike
        Output path.
    index : bool
        Whether to write row index (default: False).

    Returns
    -------
    Path
        The output path.
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=index)
    return output_path


def save_statistics(
    df: pd.DataFrame,
    path: PathLike,
    extension: str = DEFAULT_EXTENSION,
) -> Path:
    """Persist an assembled statistics table.

    Parameters
    ----------
    df : pd.DataFrame
        Result table (wide or long).
    path : PathLike
        Output path, with or without an extension.
    extension : str
        Extension appended when ``path`` has none.

    Returns
    -------
    Path
        The file actually written.
    """
    output_path = write_dataframe(df, with_default_extension(path, extension))
    logger.info("Wrote %d rows x %d columns to %s", len(df), df.shape[1], output_path)
    return output_path


def _validate_registry_columns(
    df: pd.DataFrame,
    required_columns: Optional[List[str]] = None,
) -> None:
    """Raise ValueError if any required registry column is missing."""
    if required_columns is None:
        required_columns = DEFAULT_REQUIRED_REGISTRY_COLUMNS
    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ValueError(f"Sample registry missing columns: {missing}")


def _resolve_path(value: str, base: Path) -> Path:
    """Resolve a path relative to a base directory."""
    candidate = Path(value)
    if not candidate.is_absolute():
        candidate = (base / candidate).resolve()
    return candidate


def load_sample_registry(
    path: PathLike,
    required_columns: Optional[List[str]] = None,
    path_columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """Load a sample registry CSV and ensure the required schema.

    The registry has one row per sample. ``name`` identifies the sample,
    ``events_path`` points at its event table and every other column is
    carried through as sample metadata.

    Parameters
    ----------
    path : PathLike
        Path to registry CSV file.
    required_columns : List[str], optional
        Required column names. Defaults to ``name`` and ``events_path``.
    path_columns : List[str], optional
        Columns holding file paths to resolve relative to the registry.
        Defaults to ``["events_path"]``.

    Returns
    -------
    pd.DataFrame
        Loaded and validated registry.

    Raises
    ------
    FileNotFoundError
        If the registry file does not exist.
    ValueError
        If required columns are missing or sample names repeat.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Sample registry not found: {csv_path}")
    df = pd.read_csv(csv_path)
    _validate_registry_columns(df, required_columns)

    duplicated = df["name"][df["name"].duplicated()].tolist()
    if duplicated:
        raise ValueError(f"Sample registry has duplicated names: {duplicated}")
    df["name"] = df["name"].astype(str)

    base_dir = csv_path.parent
    if path_columns is None:
        path_columns = ["events_path"]
    for col in path_columns:
        if col in df.columns:
            df[col] = df[col].apply(lambda p: str(_resolve_path(p, base_dir)))

    return df


def load_events(
    path: PathLike,
    drop_columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """Read an event table (rows = events, columns = channels).

    Parameters
    ----------
    path : PathLike
        Path to event CSV file.
    drop_columns : List[str], optional
        Columns to drop before use (e.g. exported row ids).

    Returns
    -------
    pd.DataFrame
        Numeric event table.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the table has no channels or contains non-numeric channels.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Event table not found: {csv_path}")
    df = pd.read_csv(csv_path)

    if drop_columns:
        df = df.drop(columns=[c for c in drop_columns if c in df.columns])
    if df.shape[1] == 0:
        raise ValueError(f"Event table {csv_path} has no channels")

    non_numeric = [c for c in df.columns if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise ValueError(f"Event table {csv_path} has non-numeric channels: {non_numeric}")

    return df.astype(float)
