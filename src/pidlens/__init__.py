"""pidlens - persistent identifier classification, resolution and caching."""

__version__ = "0.3.0"
