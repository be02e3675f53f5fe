"""StoreSafe: retail health, safety and compliance back office."""

__version__ = "1.0.0"
