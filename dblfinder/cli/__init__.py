"""Command line interface for dblfinder."""
