"""SQLite persistence via SQLAlchemy Core."""
