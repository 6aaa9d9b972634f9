"""Helpers shared by the CLI and the resolution engine."""
