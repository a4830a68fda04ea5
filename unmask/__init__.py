"""UNMASK - relationship analytics over imported text-message history.

Imports message exports into SQLite, groups them into conversation chunks,
embeds the chunks for semantic search, and routes chat questions to one of
several specialised agents through a keyword intent classifier.
"""

__version__ = "0.1.0"
