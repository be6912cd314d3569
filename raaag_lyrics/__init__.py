"""RAAAG lyrics backend: prompt composition, generation and feedback storage."""

__version__ = "0.3.0"
