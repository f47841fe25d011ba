"""HaulOps: transportation management back office."""

__version__ = "0.1.0"
