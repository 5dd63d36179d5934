"""Reconcile TiCS quality-gate results onto GitHub pull request reviews."""

__version__ = "1.0.0"
