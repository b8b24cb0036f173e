"""Command-line interface for notebot."""
