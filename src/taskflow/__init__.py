"""TaskFlow: a personal task tracker with recurring task series."""

__version__ = "0.1.0"
