import re

from valhalla_api.observability.metrics import UNMATCHED_ROUTE, MetricsRegistry


def _count(context, route: str, status_code: str, method: str = "GET") -> float:
    value = context.metrics.get_sample(
        "http_requests_total",
        {"method": method, "route": route, "status_code": status_code},
    )
    return value or 0.0


async def test_metrics_endpoint_returns_exposition_format(api_client) -> None:
    resp = await api_client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "# HELP" in resp.text
    assert "# TYPE" in resp.text
    assert "# HELP http_requests_total Total number of HTTP requests" in resp.text
    assert "# TYPE http_request_duration_seconds histogram" in resp.text


async def test_every_metric_family_has_help_and_type(api_client, context) -> None:
    await api_client.get("/health")
    text = (await api_client.get("/metrics")).text

    help_names = set(re.findall(r"^# HELP (\S+) ", text, flags=re.MULTILINE))
    type_names = set(re.findall(r"^# TYPE (\S+) ", text, flags=re.MULTILINE))
    assert help_names
    assert help_names == type_names
    assert "process_resident_memory_bytes" in help_names


async def test_each_request_is_counted_once(api_client, context) -> None:
    assert _count(context, "/api/v1/data", "200") == 0

    await api_client.get("/api/v1/data")
    assert _count(context, "/api/v1/data", "200") == 1

    await api_client.get("/api/v1/data?type=Service")
    assert _count(context, "/api/v1/data", "200") == 2


async def test_route_label_uses_template(api_client, context) -> None:
    await api_client.get("/api/v1/data/1")
    await api_client.get("/api/v1/data/999")
    assert _count(context, "/api/v1/data/{item_id}", "200") == 1
    assert _count(context, "/api/v1/data/{item_id}", "404") == 1


async def test_unmatched_requests_are_counted(api_client, context) -> None:
    await api_client.get("/nonexistent")
    assert _count(context, UNMATCHED_ROUTE, "404") == 1


async def test_duration_histogram_observed(api_client, context) -> None:
    await api_client.get("/health")
    observed = context.metrics.get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "route": "/health", "status_code": "200"},
    )
    assert observed == 1


def test_record_request_updates_counter_and_histogram() -> None:
    metrics = MetricsRegistry(default_metrics=False)
    metrics.record_request("GET", "/x", 200, 0.25)
    metrics.record_request("GET", "/x", 200, 0.5)

    labels = {"method": "GET", "route": "/x", "status_code": "200"}
    assert metrics.get_sample("http_requests_total", labels) == 2
    assert metrics.get_sample("http_request_duration_seconds_sum", labels) == 0.75


def test_separate_registries_do_not_share_state() -> None:
    first = MetricsRegistry()
    second = MetricsRegistry()
    first.record_request("GET", "/x", 200, 0.1)

    labels = {"method": "GET", "route": "/x", "status_code": "200"}
    assert first.get_sample("http_requests_total", labels) == 1
    assert second.get_sample("http_requests_total", labels) is None
