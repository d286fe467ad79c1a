"""
SQL access for CultBot, one repository class per table.

Every method takes an open ``aiosqlite`` connection so callers decide the
transaction boundaries.
"""
