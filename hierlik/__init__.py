"""Negative log-likelihoods and objectives for hierarchical occupancy and abundance models."""

__version__ = "0.1.0"