"""pacctl - transaction front end for pacman-style package management."""

__version__ = "0.3.0"
