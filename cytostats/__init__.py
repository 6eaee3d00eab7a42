"""cytostats: summary statistics for gated flow-cytometry data.

This package provides tools for:
- Per-population, per-channel statistics (count, frequency, MFI, GMFI,
  MedFI, ModFI, CV)
- Long and wide result tables with CSV export
- Population hierarchies built from YAML gating templates
- Dimension-reduced maps (PCA, tSNE, UMAP)

Example usage:
    >>> from cytostats.core.samples import load_experiment
    >>> from cytostats.core.statistics import StatisticsEngine
    >>>
    >>> gs = load_experiment("samples.csv", "gating.yaml")
    >>> result = StatisticsEngine().execute(gs, statistic="median", alias="T Cells")
    >>> result.data.head()
"""

__version__ = "0.1.0"
