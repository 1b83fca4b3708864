import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from fuelshare.monitoring.metrics import request_count, request_duration, active_requests

logger = logging.getLogger(__name__)


class MonitoringMiddleware(BaseHTTPMiddleware):
	"""Track request metrics for Prometheus"""

	async def dispatch(self, request: Request, call_next):
		# Skip metrics endpoint to avoid recursion
		if request.url.path == "/internal/metrics":
			return await call_next(request)

		active_requests.inc()
		start_time = time.time()
		try:
			response = await call_next(request)

			# route template keeps label cardinality bounded
			route = request.scope.get("route")
			endpoint = getattr(route, "path", request.url.path)
			duration = time.time() - start_time

			request_count.labels(
				method=request.method,
				endpoint=endpoint,
				status=response.status_code
			).inc()

			request_duration.labels(
				method=request.method,
				endpoint=endpoint
			).observe(duration)

			return response

		finally:
			active_requests.dec()
