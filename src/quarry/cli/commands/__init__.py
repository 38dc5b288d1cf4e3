"""Quarry CLI subcommands."""
