"""SQLite-backed storage adapter, tables, migrations and session lifecycle."""
