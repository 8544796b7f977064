# common/middleware.py

import logging
from common.context import set_caller_context, clear_caller_context

logger = logging.getLogger(__name__)

CALLER_ID_HEADER = 'HTTP_X_CALLER_ID'
CALLER_ROLE_HEADER = 'HTTP_X_CALLER_ROLE'


class CallerContextMiddleware:
    """
    Capture the pre-validated caller identity forwarded by the gateway.

    The gateway has already checked the token and the role; this middleware
    only copies ``X-Caller-Id``/``X-Caller-Role`` into the thread-local
    caller context and clears it once the response is produced.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        caller_id = request.META.get(CALLER_ID_HEADER) or None
        role = request.META.get(CALLER_ROLE_HEADER) or None

        if caller_id is None:
            logger.debug(f"No caller identity on request to {request.path}")

        set_caller_context(
            caller_id=caller_id,
            role=role,
            request_path=request.path,
        )

        try:
            response = self.get_response(request)
        finally:
            # Always clear context after request
            clear_caller_context()

        return response
