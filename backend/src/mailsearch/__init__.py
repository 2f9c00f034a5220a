"""Privacy-aware search over archived email."""

__version__ = "0.1.0"
