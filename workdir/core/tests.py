from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser, Permission
from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase
from rest_framework import status

from namespaces.exceptions import SpaceAlreadyExists, SpaceConflictError, SpaceDoesNotExist
from .exceptions import api_exception_handler
from .permissions import PermissionGate

User = get_user_model()


class PermissionGateTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username='editor', password='password123')
        cls.user.user_permissions.add(Permission.objects.get(codename='edit_all_spaces'))

    def test_capabilities(self):
        gate = PermissionGate()
        user = User.objects.get(pk=self.user.pk)
        self.assertTrue(gate.user_has_capability(user, 'edit_all_spaces'))
        self.assertTrue(gate.user_has_capability(user, 'namespaces.edit_all_spaces'))
        self.assertFalse(gate.user_has_capability(user, 'archive_space'))

    def test_anonymous_has_no_capabilities(self):
        gate = PermissionGate()
        self.assertFalse(gate.user_has_capability(None, 'edit_all_spaces'))
        self.assertFalse(gate.user_has_capability(AnonymousUser(), 'edit_all_spaces'))


class ExceptionHandlerTests(TestCase):
    def test_domain_errors(self):
        cases = [
            (SpaceAlreadyExists("exists"), status.HTTP_409_CONFLICT),
            (SpaceConflictError("taken"), status.HTTP_409_CONFLICT),
            (SpaceDoesNotExist("missing"), status.HTTP_404_NOT_FOUND),
            (ValidationError("bad key"), status.HTTP_400_BAD_REQUEST),
            (PermissionDenied(), status.HTTP_403_FORBIDDEN),
        ]
        for exc, expected in cases:
            response = api_exception_handler(exc, {})
            self.assertEqual(response.status_code, expected, msg=repr(exc))

    def test_unknown_errors_are_left_alone(self):
        self.assertIsNone(api_exception_handler(KeyError('x'), {}))
