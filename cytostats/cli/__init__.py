"""Command-line interface for cytostats.

Example Usage
-------------
    # From command line:
    cytostats --help
    cytostats stats --registry samples.csv --template gating.yaml --alias "T Cells" --out medfi
    cytostats map --registry samples.csv --type PCA --out maps/
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
