"""Delta coverage: test coverage of the lines a change adds."""

__version__ = "0.1.0"
