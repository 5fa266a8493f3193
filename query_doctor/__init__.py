"""query-doctor: analyze the database operations of one unit of work."""

__version__ = "0.1.0"
