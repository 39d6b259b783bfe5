import logging
import time
import uuid

logger = logging.getLogger('laboratory.request')


class RequestLogMiddleware:
    """Emit one structured log record per request.

    A request id is taken from ``X-Request-ID`` when the client sends one
    and echoed back on the response.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get('X-Request-ID') or uuid.uuid4().hex
        request.request_id = request_id
        started = time.monotonic()
        response = self.get_response(request)
        user = getattr(request, 'user', None)
        logger.info({
            'event': 'request',
            'request_id': request_id,
            'method': request.method,
            'path': request.path,
            'status': response.status_code,
            'duration_ms': round((time.monotonic() - started) * 1000, 1),
            'user': user.pk if user is not None and user.is_authenticated else None,
        })
        response['X-Request-ID'] = request_id
        return response
