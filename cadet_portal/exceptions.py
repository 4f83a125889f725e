"""DRF exception handling shared by every app's API."""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """Report service-layer ``ValidationError``/``ValueError`` as HTTP 400."""

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, "error_dict"):
            exc = exceptions.ValidationError(exc.message_dict)
        else:
            exc = exceptions.ValidationError({"detail": exc.messages})
    elif isinstance(exc, ValueError):
        logger.info("Rejected request to %s: %s", context["request"].path, exc)
        exc = exceptions.ValidationError({"detail": [str(exc)]})
    return exception_handler(exc, context)
