"""Order book, matching engine, request handling and asynchronous order persistence."""

__version__ = "0.1.0"