"""CRUISE - round engine for a hidden-iceberg crash game."""

__version__ = "0.1.0"
