import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class SlotUnavailable(APIException):
    """The (doctor, date, time) slot already holds an active appointment."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'This time slot is already booked'
    default_code = 'slot_unavailable'


def flatten_errors(detail, prefix: str = '') -> list[dict]:
    """Turn DRF's nested error detail into ``[{field, message}]``."""
    errors: list[dict] = []
    if isinstance(detail, dict):
        # many=True children come back keyed by int index on newer DRF
        for key, value in detail.items():
            if isinstance(key, int):
                path = f"{prefix}[{key}]" if prefix else str(key)
            elif key == 'non_field_errors':
                path = prefix
            else:
                path = f"{prefix}.{key}" if prefix else str(key)
            errors.extend(flatten_errors(value, path))
    elif isinstance(detail, list):
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                errors.extend(flatten_errors(value, f"{prefix}[{index}]" if prefix else str(index)))
            else:
                errors.append({'field': prefix or None, 'message': str(value)})
    else:
        errors.append({'field': prefix or None, 'message': str(detail)})
    return errors


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('unhandled error in %s', getattr(view, '__name__', view.__class__.__name__), exc_info=exc)
        return Response({'message': 'Server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    # normalize response
    data = resp.data
    if isinstance(exc, ValidationError) and isinstance(data, dict) and set(data) == {'non_field_errors'}:
        resp.data = {'message': ' '.join(str(x) for x in data['non_field_errors'])}
    elif isinstance(exc, ValidationError) and isinstance(data, dict):
        resp.data = {'message': 'Validation Error', 'errors': flatten_errors(data)}
    elif isinstance(data, dict) and 'detail' in data:
        resp.data = {'message': str(data['detail'])}
    elif isinstance(data, list):
        resp.data = {'message': ' '.join(str(x) for x in data)}
    else:
        resp.data = {'message': str(data)}
    return resp
