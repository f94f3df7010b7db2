"""Adaptive testing engine: ability estimation, item selection and termination."""

__version__ = "0.1.0"
