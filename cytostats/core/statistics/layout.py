"""Result tables and their wide/long layouts.

Computed statistics are kept as ordered ``(sample, population, key, value)``
records, where ``key`` is a channel for channel statistics, a parent alias
for frequencies and ``"Count"`` for counts. Wide and long tables are both
projections of the same records, so neither is derived by reshaping the
other.

Long layout columns:

- channel statistics: metadata, Population, Marker, <label>
- freq: metadata, Population, Parent, Frequency
- count: metadata, Population, Count

Wide layout columns:

- channel statistics: metadata, Population, one column per channel
- freq: metadata, Population, one column per parent
- count: metadata, Count (flat) or one column per population (hierarchical)

``Population`` is only present for hierarchical sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..samples.sources import NAME_COLUMN
from .dispatch import StatisticKind, parse_statistic

POPULATION_COLUMN = "Population"
MARKER_COLUMN = "Marker"
PARENT_COLUMN = "Parent"
FREQUENCY_COLUMN = "Frequency"
COUNT_COLUMN = "Count"

_ROW_ID = "__row__"


@dataclass(frozen=True)
class StatisticRecord:
    """One computed value.

    Attributes
    ----------
    sample : str
        Sample name
    population : str, optional
        Population alias (None for flat sources)
    key : str
        Channel, parent alias or "Count"
    value : float
        Computed value
    """

    sample: str
    population: Optional[str]
    key: str
    value: float


def _ordered_unique(values: Iterable[Any]) -> List[Any]:
    seen = set()
    ordered = []
    for v in values:
        if v not in seen:
            seen.add(v)
            ordered.append(v)
    return ordered


def long_columns(kind: StatisticKind) -> Tuple[str, str]:
    """Key and value column names of the long layout for kind."""
    kind = parse_statistic(kind)
    if kind is StatisticKind.COUNT:
        return POPULATION_COLUMN, COUNT_COLUMN
    if kind is StatisticKind.FREQ:
        return PARENT_COLUMN, FREQUENCY_COLUMN
    return MARKER_COLUMN, kind.label


@dataclass
class StatisticTable:
    """Ordered statistic records plus per-sample metadata.

    Attributes
    ----------
    kind : StatisticKind
        Statistic the records hold
    records : List[StatisticRecord]
        Records in output order
    metadata : pd.DataFrame
        One row per sample, ``name`` first
    hierarchical : bool
        Whether records carry population aliases
    """

    kind: StatisticKind
    records: List[StatisticRecord] = field(default_factory=list)
    metadata: pd.DataFrame = field(default_factory=lambda: pd.DataFrame({NAME_COLUMN: []}))
    hierarchical: bool = False

    def __len__(self) -> int:
        return len(self.records)

    @property
    def samples(self) -> List[str]:
        return _ordered_unique(r.sample for r in self.records)

    @property
    def populations(self) -> List[Optional[str]]:
        return _ordered_unique(r.population for r in self.records)

    @property
    def keys(self) -> List[str]:
        return _ordered_unique(r.key for r in self.records)

    @property
    def metadata_columns(self) -> List[str]:
        return list(self.metadata.columns)

    @classmethod
    def concat(cls, tables: Sequence["StatisticTable"]) -> "StatisticTable":
        """Concatenate tables of the same kind, preserving order."""
        if not tables:
            raise ValueError("No tables to concatenate")
        kinds = {t.kind for t in tables}
        if len(kinds) > 1:
            raise ValueError(f"Cannot concatenate tables of different kinds: {sorted(k.value for k in kinds)}")

        records: List[StatisticRecord] = []
        for t in tables:
            records.extend(t.records)
        metadata = pd.concat([t.metadata for t in tables], ignore_index=True)
        metadata = metadata.drop_duplicates(NAME_COLUMN).reset_index(drop=True)
        return cls(
            kind=tables[0].kind,
            records=records,
            metadata=metadata,
            hierarchical=any(t.hierarchical for t in tables),
        )

    def _metadata_lookup(self) -> Dict[str, Dict[str, Any]]:
        return {
            str(row[NAME_COLUMN]): row for row in self.metadata.to_dict("records")
        }

    def _base_row(self, lookup: Dict[str, Dict[str, Any]], sample: str) -> Dict[str, Any]:
        row = dict(lookup.get(sample, {}))
        row[NAME_COLUMN] = sample
        return row

    def to_frame(self) -> pd.DataFrame:
        """Records as a plain four-column DataFrame."""
        return pd.DataFrame(
            [(r.sample, r.population, r.key, r.value) for r in self.records],
            columns=["sample", "population", "key", "value"],
        )

    def to_long(self) -> pd.DataFrame:
        """One row per record (count: one row per sample and population)."""
        key_col, value_col = long_columns(self.kind)
        lookup = self._metadata_lookup()
        rows = []
        for r in self.records:
            row = self._base_row(lookup, r.sample)
            if self.hierarchical:
                row[POPULATION_COLUMN] = r.population
            if self.kind is not StatisticKind.COUNT:
                row[key_col] = r.key
            row[value_col] = r.value
            rows.append(row)

        columns = self.metadata_columns
        if self.hierarchical:
            columns = columns + [POPULATION_COLUMN]
        if self.kind is not StatisticKind.COUNT:
            columns = columns + [key_col]
        columns = columns + [value_col]
        return pd.DataFrame(rows, columns=columns)

    def to_wide(self) -> pd.DataFrame:
        """One row per sample and population, one column per key."""
        lookup = self._metadata_lookup()

        if self.kind is StatisticKind.COUNT and self.hierarchical:
            # Populations become columns, one row per sample
            grouped: Dict[str, Dict[str, Any]] = {}
            for r in self.records:
                grouped.setdefault(r.sample, {})[r.population] = r.value
            value_columns = self.populations
            rows = []
            for sample, values in grouped.items():
                row = self._base_row(lookup, sample)
                row.update(values)
                rows.append(row)
            return pd.DataFrame(rows, columns=self.metadata_columns + value_columns)

        grouped_pop: Dict[Tuple[str, Optional[str]], Dict[str, Any]] = {}
        for r in self.records:
            grouped_pop.setdefault((r.sample, r.population), {})[r.key] = r.value

        rows = []
        for (sample, population), values in grouped_pop.items():
            row = self._base_row(lookup, sample)
            if self.hierarchical:
                row[POPULATION_COLUMN] = population
            row.update(values)
            rows.append(row)

        columns = self.metadata_columns
        if self.hierarchical:
            columns = columns + [POPULATION_COLUMN]
        return pd.DataFrame(rows, columns=columns + self.keys)

    def to_format(self, format: str = "long") -> pd.DataFrame:
        """Project to "long" or "wide"."""
        if format == "long":
            return self.to_long()
        if format == "wide":
            return self.to_wide()
        raise ValueError(f"format must be 'long' or 'wide', got {format!r}")


def _default_id_columns(df: pd.DataFrame) -> List[str]:
    """Columns up to and including Population.

    Without a Population column, the leading run of non-numeric columns
    (plus ``name``) identifies a row; statistic columns are always numeric.
    """
    columns = list(df.columns)
    if POPULATION_COLUMN in columns:
        return columns[: columns.index(POPULATION_COLUMN) + 1]
    id_columns = []
    for column in columns:
        if column != NAME_COLUMN and pd.api.types.is_numeric_dtype(df[column]):
            break
        id_columns.append(column)
    return id_columns or columns[:1]


def wide_to_long(
    df: pd.DataFrame,
    kind,
    id_columns: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Melt a wide statistics table into the long layout.

    Parameters
    ----------
    df : pd.DataFrame
        Wide table.
    kind : str or StatisticKind
        Statistic held by the table; selects the key and value column names.
    id_columns : Sequence[str], optional
        Columns identifying a row (metadata and Population). Defaults to the
        columns up to and including Population, or else to the leading
        non-numeric columns. Pass it explicitly when metadata is numeric.

    Returns
    -------
    pd.DataFrame
        Long table, rows ordered by wide row then by column order.
    """
    kind = parse_statistic(kind)
    key_col, value_col = long_columns(kind)
    if kind is StatisticKind.COUNT and COUNT_COLUMN in df.columns:
        # Flat counts have no key to melt by
        return df.copy()

    if id_columns is None:
        id_columns = _default_id_columns(df)
    if kind is StatisticKind.COUNT:
        id_columns = [c for c in id_columns if c != POPULATION_COLUMN]
    id_columns = list(id_columns)
    value_columns = [c for c in df.columns if c not in id_columns]

    melted = df.assign(**{_ROW_ID: np.arange(len(df))}).melt(
        id_vars=id_columns + [_ROW_ID],
        value_vars=value_columns,
        var_name=key_col,
        value_name=value_col,
    )
    melted = melted.sort_values(_ROW_ID, kind="mergesort")
    return melted.drop(columns=_ROW_ID).reset_index(drop=True)


def long_to_wide(
    df: pd.DataFrame,
    kind,
    id_columns: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Spread a long statistics table into the wide layout.

    Parameters
    ----------
    df : pd.DataFrame
        Long table.
    kind : str or StatisticKind
        Statistic held by the table.
    id_columns : Sequence[str], optional
        Columns identifying a wide row. Defaults to every column except the
        key and value columns.

    Returns
    -------
    pd.DataFrame
        Wide table, rows in first-appearance order and key columns in
        first-appearance order.
    """
    kind = parse_statistic(kind)
    key_col, value_col = long_columns(kind)
    if key_col not in df.columns:
        return df.copy()

    if id_columns is None:
        id_columns = [c for c in df.columns if c not in (key_col, value_col)]
    id_columns = list(id_columns)

    if id_columns:
        row_id = df.groupby(id_columns, sort=False, dropna=False).ngroup().to_numpy()
    else:
        row_id = np.zeros(len(df), dtype=int)

    indexed = df.assign(**{_ROW_ID: row_id})
    spread = indexed.pivot(index=_ROW_ID, columns=key_col, values=value_col)
    spread = spread.reindex(columns=_ordered_unique(df[key_col]))

    ids = indexed.drop_duplicates(_ROW_ID).set_index(_ROW_ID)[id_columns]
    wide = pd.concat([ids, spread], axis=1).sort_index().reset_index(drop=True)
    wide.columns.name = None
    return wide
