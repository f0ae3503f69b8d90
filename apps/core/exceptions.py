"""
Custom exceptions and the DRF exception handler.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns consistent format.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    # Draco exceptions carry their own status code
    if isinstance(exc, DracoException) and getattr(exc, 'status_code', None):
        logger.warning(
            f"Draco exception: {exc.__class__.__name__}",
            extra={
                'exception': exc.message,
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            }
        )
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
                'details': exc.details,
                'request_id': request_id,
            },
            status=exc.status_code
        )

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    logger.error(
        f"API Exception: {exc.__class__.__name__}",
        extra={
            'exception': str(exc),
            'request_id': request_id,
            'path': request.path if request else None,
            'method': request.method if request else None,
        },
        exc_info=True
    )

    # If DRF didn't handle it, return a generic 500 error
    if response is None:
        return Response(
            {
                'error': 'Internal server error',
                'detail': 'An unexpected error occurred',
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Add request_id to all error responses
    if request_id and isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response


class DracoException(Exception):
    """Base exception for Draco-specific errors."""

    code = 'DRACO_ERROR'
    status_code = None

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RoleDirectoryError(DracoException):
    """Raised when role assignments cannot be retrieved from the directory."""
    code = 'ROLE_DIRECTORY_ERROR'
    status_code = 502


class RoleCatalogError(DracoException):
    """Raised when the static role tables are inconsistent."""
    code = 'ROLE_CATALOG_ERROR'


class PermissionDeniedError(DracoException):
    """Raised when the principal lacks a required role or permission."""
    code = 'FORBIDDEN'
    status_code = 403
