"""
Database package for CultBot.

Provides the shared aiosqlite connection with serialized write transactions,
the schema, and the startup/shutdown lifecycle.

Public API:
    - database: Global Database instance
    - db_connection: Shared ConnectionManager used by services and repositories
    - SchemaManager: Table and index creation
"""
