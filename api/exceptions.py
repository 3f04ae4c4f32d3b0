import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ValidationError(exceptions.ValidationError):
    """Missing or malformed input. Raised before anything reaches storage."""


class FileRejected(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Arquivo inválido.'
    default_code = 'file_rejected'


class NotFoundError(exceptions.NotFound):
    default_detail = 'Registro não encontrado.'


class InvalidTransitionError(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Mudança de status não permitida.'
    default_code = 'invalid_transition'


class ExtractionParseError(exceptions.APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = 'Erro ao processar os dados extraídos. Tente novamente.'
    default_code = 'extraction_parse_error'


class ExternalServiceError(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Serviço externo indisponível. Tente novamente.'
    default_code = 'external_service_error'


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, list):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    """Render every error as {'success': False, 'error': ..., 'fields': ...}."""
    if isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(
            exc.message_dict if hasattr(exc, 'error_dict') else exc.messages
        )
    elif isinstance(exc, Http404):
        exc = NotFoundError()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return Response({
            'success': False,
            'error': 'Ocorreu um erro inesperado. Tente novamente.'
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail = response.data
    payload = {
        'success': False,
        'error': _first_message(detail.get('detail', detail) if isinstance(detail, dict) else detail),
    }
    if isinstance(detail, dict) and 'detail' not in detail:
        payload['fields'] = detail
    response.data = payload
    return response
