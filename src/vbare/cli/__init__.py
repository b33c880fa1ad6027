"""Command-line interface for vbare."""
