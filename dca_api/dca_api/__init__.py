"""dca_api - Composite Signal Score weekly allocation service."""

__version__ = "0.1.0"
