"""Configuration for the statistics pipeline.

Defaults reproduce the behavior expected by downstream analysis scripts:
median fluorescence in long format with a 0.6 smoothing factor for modes.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

VALID_FORMATS = ("long", "wide")


@dataclass
class StatisticsConfig:
    """Configuration for statistics computation and export.

    Attributes
    ----------
    statistic : str
        Statistic name or alias (mean, median, mode, count, freq, geo mean, CV)
    format : str
        Output layout, "long" or "wide"
    density_smooth : float
        Bandwidth multiplier for the mode density estimate
    mode_grid_size : int
        Number of points the mode density is evaluated on
    default_parent : str
        Parent used for frequencies when none is given
    csv_extension : str
        Extension appended to output paths without one
    channels : List[str], optional
        Channels or markers to summarize (None = all)
    warn_missing_transform : bool
        Warn when statistics are returned on a transformed scale
    """

    statistic: str = "median"
    format: str = "long"
    density_smooth: float = 0.6
    mode_grid_size: int = 512
    default_parent: str = "root"
    csv_extension: str = ".csv"
    channels: Optional[List[str]] = None
    warn_missing_transform: bool = True

    def __post_init__(self):
        if self.format not in VALID_FORMATS:
            raise ValueError(f"format must be one of {VALID_FORMATS}, got {self.format!r}")
        if not self.density_smooth > 0:
            raise ValueError(f"density_smooth must be positive, got {self.density_smooth}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatisticsConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Path) -> "StatisticsConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Handle nested statistics section
        if "statistics" in data:
            data = data["statistics"]
        return cls.from_dict(data)

    @classmethod
    def default(cls) -> "StatisticsConfig":
        """Create default configuration."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump({"statistics": self.to_dict()}, f, default_flow_style=False)
