"""Core computational modules for cytostats.

This package contains:
- samples: Samples, gates, transforms and population hierarchies
- statistics: Statistic dispatch, computation, aggregation and layout
- mapping: Dimension-reduced maps delegated to scanpy
- errors: Error types with codes and suggestions
"""
