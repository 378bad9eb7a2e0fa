"""Find and remove build artifacts, dependency caches and transient files."""

__version__ = "0.4.0"
