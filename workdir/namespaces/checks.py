from django.core import checks
from django.db import connections

from .exceptions import UnsupportedBackendError
from .schema import schema_files


@checks.register(checks.Tags.database)
def check_schema_files(app_configs, databases=None, **kwargs):
    """Every configured database engine needs namespace schema files."""
    errors = []
    for alias in databases or ():
        vendor = connections[alias].vendor
        try:
            schema_files(vendor)
        except UnsupportedBackendError as exc:
            errors.append(checks.Error(
                str(exc),
                hint="Supply sql/<engine>/ files for this engine or switch DATABASE_URL.",
                obj=alias,
                id='namespaces.E001',
            ))
    return errors
