"""driftcache: fuzzy content cache for expensive derived artifacts."""

from driftcache.version import __version__

__all__ = ["__version__"]
