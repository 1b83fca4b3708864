from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
import uuid
import contextvars
import logging

request_id_context = contextvars.ContextVar("request_id", default=None)

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
	"""Reuse the caller's X-Request-ID or generate one, and echo it back"""

	async def dispatch(self, request: Request, call_next):
		request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

		request.state.request_id = request_id
		token = request_id_context.set(request_id)
		try:
			response = await call_next(request)
		finally:
			request_id_context.reset(token)

		response.headers["X-Request-ID"] = request_id
		return response


def get_request_id() -> str:
	return request_id_context.get() or "unknown"
