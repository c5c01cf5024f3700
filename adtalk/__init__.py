"""Build the automatic differentiation talk: parse, execute, check, render."""

__version__ = "0.1.0"
