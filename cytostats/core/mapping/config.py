"""Configuration for dimension-reduced maps."""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

# Technical and previously mapped channels are never used as map inputs
DEFAULT_EXCLUDED_CHANNELS = [
    "Time",
    "Original",
    "Sample ID",
    "Event ID",
    "PCA",
    "tSNE",
    "FIt-SNE",
    "UMAP",
    "EmbedSOM",
]


@dataclass
class MappingConfig:
    """Configuration for mapping.

    Attributes
    ----------
    type : str
        Dimension-reduction type (PCA, tSNE or UMAP)
    display : float
        Events to map per sample: a fraction when <= 1, else a count
    seed : int, optional
        Seed for event sampling and the mapping algorithm
    n_neighbors : int
        Neighborhood size for the UMAP graph
    perplexity : float
        tSNE perplexity (capped for small inputs)
    exclude_channels : List[str]
        Channel name fragments excluded from the default channel selection
    """

    type: str = "UMAP"
    display: float = 1.0
    seed: Optional[int] = None
    n_neighbors: int = 15
    perplexity: float = 30.0
    exclude_channels: List[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_CHANNELS)
    )

    def __post_init__(self):
        if not self.display > 0:
            raise ValueError(f"display must be positive, got {self.display}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Path) -> "MappingConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Handle nested mapping section
        if "mapping" in data:
            data = data["mapping"]
        return cls.from_dict(data)

    @classmethod
    def default(cls) -> "MappingConfig":
        """Create default configuration."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump({"mapping": self.to_dict()}, f, default_flow_style=False)
