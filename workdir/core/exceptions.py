from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from namespaces.exceptions import SpaceAlreadyExists, SpaceConflictError, SpaceDoesNotExist


def api_exception_handler(exc, context):
    """
    DRF exception handler that also understands the registry's domain errors.
    PermissionDenied and Http404 are already handled by DRF itself.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, (SpaceAlreadyExists, SpaceConflictError)):
        return Response({'detail': str(exc) or "This space already exists."}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, SpaceDoesNotExist):
        return Response({'detail': str(exc) or "No such space."}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, 'error_dict') else exc.messages
        return Response({'detail': detail}, status=status.HTTP_400_BAD_REQUEST)
    return None
