"""Command-line interface for the stager."""
