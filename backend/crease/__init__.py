"""Crease: settlement and result-reconciliation engine for cricket wagering."""

__version__ = "0.1.0"
__author__ = "Crease Team"

__all__ = ["__version__", "__author__"]
