"""Test suite for cytostats.

Test organization:
- fixtures/: Synthetic event tables and marker maps
- unit/: Unit tests for individual modules

Run tests with:
    pytest tests/
    pytest tests/unit/ -v --tb=short
"""
