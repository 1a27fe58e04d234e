"""TCOF Toolkit backend."""

__version__ = "0.1.0"
