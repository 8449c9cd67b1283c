"""owl — declarative package inventory and reconciliation for Arch hosts."""

__version__ = "0.1.0"
