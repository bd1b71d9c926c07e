"""Sync named skills from Git and Gist sources into a local skills directory."""

__version__ = "1.0.0"
