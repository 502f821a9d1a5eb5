"""Command-line interface for the legacy room migration tool."""
