"""gscm - geometry-based multipath channel simulation."""

__version__ = "0.1.0"
