"""
Plain DDL for the registry tables, one directory per database engine under sql/.

Django migrations create the tables; the DDL files are what operators hand to DBAs who
provision schemas out of band, so every engine the project runs on must have them.
"""
from pathlib import Path

from .exceptions import UnsupportedBackendError

SCHEMA_DIR = Path(__file__).resolve().parent / 'sql'

SCHEMA_FILES = {
    'namespaces': 'namespaces_table.sql',
    'namespace_admins': 'namespace_admins_table.sql',
}


def schema_files(vendor):
    """Returns {table: path} for `vendor` (a Django connection.vendor string)."""
    paths = {}
    for table, filename in SCHEMA_FILES.items():
        path = SCHEMA_DIR / vendor / filename
        if not path.is_file():
            raise UnsupportedBackendError(
                f"No schema file {filename} for database engine '{vendor}'; add it under {SCHEMA_DIR / vendor}."
            )
        paths[table] = path
    return paths


def schema_sql(vendor):
    return "\n".join(path.read_text() for path in schema_files(vendor).values())
