# apps/api/v1/views/base.py
"""
Shared helpers for API views that call the inventory services.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response

from apps.inventory.exceptions import (
    DuplicateRelease,
    InvalidStateTransition,
    InventoryError,
    NotFound,
)


def error_status(exc):
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (InvalidStateTransition, DuplicateRelease)):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def service_error_response(exc: DjangoValidationError) -> Response:
    """
    Turn a service-layer ValidationError into an API response.

    Inventory errors carry their code and structured fields; plain Django
    validation errors become ``{'detail': message}``.
    """
    if isinstance(exc, InventoryError):
        data = exc.to_dict()
    else:
        data = {'detail': exc.message if hasattr(exc, 'message') else '; '.join(exc.messages)}
    return Response(data, status=error_status(exc))
