"""
Domain errors and the API-wide exception handler.

Domain operations raise DRF ``APIException`` subclasses so that the
handler below can render them without any per-view translation.  Every
error leaves the API as ``{"error": "<message>"}``.
"""
from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class WorkloadCapacityError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Technician has reached maximum workload'
    default_code = 'max_workload'


class TechnicianUnavailableError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Technician is not available'
    default_code = 'technician_unavailable'


class InvalidStatusTransition(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid status transition'
    default_code = 'invalid_transition'


def _flatten(detail, prefix: str = '') -> list[str]:
    """Collapse a DRF error structure into ``field: message`` strings."""
    if isinstance(detail, dict):
        parts: list[str] = []
        for key, value in detail.items():
            label = prefix if key in ('non_field_errors', 'detail') else key
            parts.extend(_flatten(value, label))
        return parts
    if isinstance(detail, (list, tuple)):
        parts = []
        for item in detail:
            parts.extend(_flatten(item, prefix))
        return parts
    return [f'{prefix}: {detail}' if prefix else str(detail)]


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception({'event': 'unhandled_error', 'view': type(view).__name__ if view else None})
        message = str(exc) if settings.DEBUG else 'Internal server error'
        return Response({'error': message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    data = resp.data
    # SimpleJWT adds "code" and "messages" next to "detail"
    if isinstance(data, dict) and 'detail' in data:
        data = data['detail']
    if isinstance(data, (dict, list)):
        message = '; '.join(_flatten(data))
    else:
        message = str(data)
    return Response({'error': message}, status=resp.status_code, headers=_passthrough_headers(resp))


def _passthrough_headers(resp) -> dict:
    return {k: v for k, v in resp.items() if k in ('WWW-Authenticate', 'Retry-After', 'Allow')}
