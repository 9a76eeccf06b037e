"""Command line interface for logsmith."""
