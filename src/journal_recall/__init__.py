"""Journal indexing, hybrid retrieval and journal-grounded chat."""

__version__ = "0.1.0"
