"""Maintenance scripts, run with ``python -m tcof.scripts.<name>``."""
