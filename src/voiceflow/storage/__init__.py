"""Local SQLite persistence backend."""
