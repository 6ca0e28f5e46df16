"""Command-line interface for arch-testing."""
