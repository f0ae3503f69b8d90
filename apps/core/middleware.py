"""
Core middleware for request processing.
"""
import time
import uuid
import logging
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class RequestIDMiddleware(MiddlewareMixin):
    """
    Inject a unique request_id into each request for tracing.

    An incoming ``X-Request-ID`` header is reused so that ids correlate with
    the caller's logs. The id is echoed back on the response.
    """

    def process_request(self, request):
        """Generate and attach request_id to the request."""
        request.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        request.start_time = time.time()
        return None

    def process_response(self, request, response):
        """Add request_id to response headers and log completion."""
        request_id = getattr(request, 'request_id', None)
        if request_id:
            response['X-Request-ID'] = request_id

        start_time = getattr(request, 'start_time', None)
        if start_time is not None:
            logger.debug(
                f"{request.method} {request.path} -> {response.status_code}",
                extra={
                    'request_id': request_id,
                    'status_code': response.status_code,
                    'duration_ms': round((time.time() - start_time) * 1000, 2),
                }
            )
        return response
