"""Bundled data files for pacctl."""
