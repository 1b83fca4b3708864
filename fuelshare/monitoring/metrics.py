from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

router = APIRouter()

# HTTP
request_count = Counter(
	'http_requests_total',
	'Total HTTP requests',
	['method', 'endpoint', 'status']
)

request_duration = Histogram(
	'http_request_duration_seconds',
	'HTTP request duration',
	['method', 'endpoint'],
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

active_requests = Gauge(
	'http_requests_active',
	'Number of active HTTP requests'
)

# Billing
stay_validations = Counter(
	'stay_validations_total',
	'Stay validation outcomes',
	['outcome', 'rule']
)

fuel_cost_computations = Counter(
	'fuel_cost_computations_total',
	'Fuel cost computations'
)

fuel_fills_recorded = Counter(
	'fuel_fills_recorded_total',
	'Fuel fills recorded',
	['outcome']
)

meter_swaps = Counter(
	'meter_swaps_total',
	'Meter replacements'
)

data_integrity_warnings = Counter(
	'data_integrity_warnings_total',
	'Non-fatal data inconsistencies met while computing costs'
)


@router.get("/metrics")
async def metrics():
	"""Prometheus metrics endpoint"""
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
