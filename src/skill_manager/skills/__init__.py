"""Skill synchronization engine: metadata, fetchers, skip-check and batch sync."""
