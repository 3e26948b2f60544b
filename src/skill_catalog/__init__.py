"""Discover, cache and install agent skills from remote sources."""

__version__ = "0.1.0"
