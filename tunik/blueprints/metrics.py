"""
Prometheus metrics for the API: request count and latency per blueprint,
plus rejected requests per domain error category.
"""
import time

from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

metrics_bp = Blueprint('metrics', __name__)

requests_total = Counter(
    'tunik_http_requests_total',
    'HTTP requests by resource and status',
    ['resource', 'method', 'status']
)

request_seconds = Histogram(
    'tunik_http_request_duration_seconds',
    'HTTP request latency by resource',
    ['resource']
)

domain_errors_total = Counter(
    'tunik_domain_errors_total',
    'Requests rejected with a domain error',
    ['category']
)


def setup_metrics_instrumentation(app):
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def record_request(response):
        # blueprint name: orders, quotes, appointments, main, metrics
        resource = request.blueprint or 'unmatched'
        requests_total.labels(resource, request.method, response.status_code).inc()
        started = g.pop('request_started', None)
        if started is not None:
            request_seconds.labels(resource).observe(time.perf_counter() - started)
        return response


def record_domain_error(category):
    domain_errors_total.labels(category=category).inc()


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
