from resourceforge.persistence.adapter import Database
from resourceforge.persistence.config import create_database, resolve_database_url
from resourceforge.persistence.query import AND, OR, Column, QueryBuilder
from resourceforge.persistence.sqlite import SQLiteDatabase

__all__ = [
    "AND",
    "OR",
    "Column",
    "Database",
    "QueryBuilder",
    "SQLiteDatabase",
    "create_database",
    "resolve_database_url",
]
