"""Core module: configuration, database, errors and scheduling."""
