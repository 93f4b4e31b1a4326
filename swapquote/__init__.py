"""Multi-venue swap quote engine."""

__version__ = "0.1.0"
