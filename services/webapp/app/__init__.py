"""Index build lens read-only webapp."""

__version__ = "0.1.0"
