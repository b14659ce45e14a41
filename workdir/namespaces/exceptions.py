from django.core.exceptions import ImproperlyConfigured, ObjectDoesNotExist


class SpaceError(Exception):
    """Base class for registry errors that callers are expected to handle."""


class SpaceAlreadyExists(SpaceError):
    """add_space() was called with a space that is already persisted."""


class SpaceDoesNotExist(SpaceError, ObjectDoesNotExist):
    """An operation needs a persisted space and did not get one."""


class SpaceConflictError(SpaceError):
    """
    The namespace row could not be inserted: the key or name is taken, or
    concurrent creates kept claiming the same identifier.
    """


class SpaceNotPersisted(RuntimeError):
    """
    Accessing the id (or anything derived from it) of a transient space.
    This is a programming error, not something to recover from.
    """


class UnsupportedBackendError(ImproperlyConfigured):
    """The active database engine has no namespace schema files."""
