"""Execution state and basic-block code analysis for an EVM interpreter."""

__version__ = "0.1.0"
__all__ = ["analysis", "state"]