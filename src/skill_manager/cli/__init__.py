"""Command line entry points for skill-manager."""
