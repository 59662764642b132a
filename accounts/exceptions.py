# exceptions.py
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.db.models import ProtectedError
import logging
from django.conf import settings

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    400: 'Validation error',
    401: 'Authentication required',
    403: 'Permission denied',
    404: 'Resource not found',
    405: 'Method not allowed',
    415: 'Unsupported media type',
    429: 'Too many requests',
}


def error_body(message, details, status_code):
    return {
        'error': True,
        'message': message,
        'details': details,
        'status_code': status_code
    }


def _view_name(context):
    view = context.get('view') if context else None
    return view.__class__.__name__ if view is not None else 'unknown view'


def custom_exception_handler(exc, context):
    """
    Wrap every API error in the Xstore envelope:
    {"error": true, "message": ..., "details": ..., "status_code": ...}
    """
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        message = STATUS_MESSAGES.get(response.status_code, 'An error occurred')
        response.data = error_body(message, response.data, response.status_code)

    # Deleting a row something still points at, e.g. a city with products
    elif isinstance(exc, ProtectedError):
        logger.info("Protected delete refused in %s: %s", _view_name(context), exc)
        response = Response(error_body(
            'Validation error',
            {'non_field_errors': ['This record is still referenced by other records. Remove these associations first.']},
            400
        ), status=status.HTTP_400_BAD_REQUEST)

    # Handle Django ValidationError
    elif isinstance(exc, ValidationError):
        logger.warning("Validation error in %s: %s", _view_name(context), exc)
        response = Response(
            error_body('Validation error', {'non_field_errors': exc.messages}, 400),
            status=status.HTTP_400_BAD_REQUEST
        )

    # Handle Django IntegrityError
    elif isinstance(exc, IntegrityError):
        logger.error("Integrity error in %s: %s", _view_name(context), exc)
        response = Response(
            error_body('Database integrity error', {'error': 'This operation violates database constraints'}, 400),
            status=status.HTTP_400_BAD_REQUEST
        )

    # Handle unexpected errors
    else:
        logger.exception("Unexpected error in %s", _view_name(context))
        response = Response(
            error_body('An unexpected error occurred', {'error': str(exc)} if settings.DEBUG else {}, 500),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response
