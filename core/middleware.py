import logging
import time

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """Log method, path, status and duration of every request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        user = getattr(request, 'user', None)
        logger.info('%s %s -> %s (%.1f ms) user=%s', request.method, request.path, response.status_code,
                    elapsed_ms, getattr(user, 'pk', None))
        return response
