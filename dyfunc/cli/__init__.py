"""CLI module for dyfunc."""
