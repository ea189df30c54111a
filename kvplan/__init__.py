"""Region metadata, region caching, timestamps and per-region sharding for a distributed key-value store client."""

__version__ = "0.1.0"