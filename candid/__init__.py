"""Candid: multi-evaluator weighting for job evaluation criteria."""

__version__ = "0.3.0"
