from django.core.exceptions import ValidationError

from .space import KEY_PATTERN


def validate_space_key(value, repository, editing=None):
    """
    A key must be alphanumeric and must not collide (case-insensitively) with any
    namespace: core, extension, or another space. Keeping the key of the space being
    edited is allowed.
    """
    if not value or not KEY_PATTERN.fullmatch(value):
        raise ValidationError("The key may only contain letters and digits.", code='invalid_key')

    if editing is not None and editing.key.lower() == value.lower():
        return value

    taken = {name.strip().lower() for name in repository.get_all_namespaces().values()}
    if value.strip().lower() in taken:
        raise ValidationError(f"The namespace {value} is already in use.", code='key_in_use')
    return value


def validate_space_name(value, repository, editing=None):
    """Display names only have to be unique among spaces."""
    if editing is not None and editing.name.lower() == value.lower():
        return value
    if repository.get_space_by_name(value) is not None:
        raise ValidationError(f"A space called {value} already exists.", code='name_in_use')
    return value
