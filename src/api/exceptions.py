"""DRF exception handler mapping engine errors to HTTP responses."""
import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

from intelligence.exceptions import AllowanceExceeded, DataSourceUnavailable, InvalidConfiguration

logger = logging.getLogger("portal")

HANDLED_ERRORS = (
    AllowanceExceeded,
    DataSourceUnavailable,
    InvalidConfiguration,
    ValueError,
    DjangoValidationError,
    ObjectDoesNotExist,
)


def intelligence_exception_handler(exc, context):
    """Map engine errors to HTTP codes; everything else goes to DRF."""
    if isinstance(exc, HANDLED_ERRORS):
        set_rollback()
    if isinstance(exc, AllowanceExceeded):
        return Response(
            {"detail": str(exc), "code": "allowance_exceeded", **exc.as_payload()},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, DataSourceUnavailable):
        logger.warning("Data source unavailable on %s", context.get("view").__class__.__name__)
        return Response(
            {"detail": str(exc), "code": "data_unavailable"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if isinstance(exc, (InvalidConfiguration, ValueError)):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, DjangoValidationError):
        return Response({"detail": exc.messages}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ObjectDoesNotExist):
        return Response({"detail": "Ressource introuvable."}, status=status.HTTP_404_NOT_FOUND)
    return exception_handler(exc, context)
