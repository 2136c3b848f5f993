"""Tests for the HTTP API and its error response formats."""

from fastapi.testclient import TestClient

import pipealert.api.app as app_module
from pipealert.api.app import create_app
from pipealert.api.deps import get_execution_store, get_handler, get_route_store
from pipealert.core.errors import MalformedEventError
from pipealert.messaging.handler import HandleResult
from pipealert.models.execution import BuildFailure, ExecutionRecord
from pipealert.models.notification import SimpleNotification
from pipealert.models.route import RouteRule

EXECUTION_ID = "94fb261b-65d0-41ba-bea3-b08420e9b5e7"


class FakeExecutionStore:
    def __init__(self, records: dict[str, ExecutionRecord] | None = None):
        self.records = records or {}

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        return self.records.get(execution_id)


class FakeRouteStore:
    def __init__(self, rules: list[RouteRule] | None = None, config_file: str = ""):
        self.rules = list(rules or [])
        self.config_file = config_file

    async def load(self) -> list[RouteRule]:
        return self.rules

    async def save(self, rules: list[RouteRule] | None = None) -> None:
        self.rules = list(rules or [])


class FakeHandler:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.payloads: list[bytes] = []
        self.reloads = 0

    async def handle_payload(self, data: bytes) -> HandleResult:
        self.payloads.append(data)
        if self.error is not None:
            raise self.error
        return HandleResult(
            bot="simple",
            notification=SimpleNotification(message=data.decode("utf-8")),
            channel="#general",
            delivered=True,
        )

    async def reload_routes(self) -> None:
        self.reloads += 1


def _make_client(
    monkeypatch,
    execution_store: FakeExecutionStore | None = None,
    route_store: FakeRouteStore | None = None,
    handler: FakeHandler | None = None,
) -> TestClient:
    async def _noop() -> None:
        return None

    monkeypatch.setattr(app_module, "init_redis_pool", _noop)
    monkeypatch.setattr(app_module, "close_redis_pool", _noop)
    monkeypatch.setattr(app_module, "close_message_handler", _noop)

    app = create_app()
    app.dependency_overrides[get_execution_store] = lambda: execution_store or FakeExecutionStore()
    app.dependency_overrides[get_route_store] = lambda: route_store or FakeRouteStore()
    app.dependency_overrides[get_handler] = lambda: handler or FakeHandler()
    return TestClient(app)


def test_missing_execution_response_format(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.get("/api/v1/executions/missing-execution")

    assert response.status_code == 404
    payload = response.json()
    assert payload["code"] == 404
    assert payload["message"] == "Execution missing-execution not found"
    assert "data" in payload


def test_get_execution(monkeypatch) -> None:
    record = ExecutionRecord(
        execution_id=EXECUTION_ID,
        pipeline_name="meerkat",
        failures=[BuildFailure(id="build-1", name="Build")],
    )
    client = _make_client(monkeypatch, execution_store=FakeExecutionStore({EXECUTION_ID: record}))

    response = client.get(f"/api/v1/executions/{EXECUTION_ID}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pipeline_name"] == "meerkat"
    assert data["failures"][0]["kind"] == "build"
    assert data["is_notified"] is False


def test_receive_event(monkeypatch) -> None:
    handler = FakeHandler()
    client = _make_client(monkeypatch, handler=handler)

    response = client.post("/api/v1/events", content=b"Backup finished")

    assert response.status_code == 200
    payload = response.json()
    assert payload["code"] == 0
    assert payload["data"]["channel"] == "#general"
    assert payload["data"]["notification"]["type"] == "SimpleNotification"
    assert handler.payloads == [b"Backup finished"]


def test_malformed_event_response_format(monkeypatch) -> None:
    handler = FakeHandler(MalformedEventError("Source action succeeded without an execution result", "e-1"))
    client = _make_client(monkeypatch, handler=handler)

    response = client.post("/api/v1/events", content=b"{}")

    assert response.status_code == 400
    payload = response.json()
    assert payload["code"] == 400
    assert payload["message"] == "Source action succeeded without an execution result"
    assert payload["data"] == {"execution_id": "e-1"}


def test_list_and_replace_routes(monkeypatch) -> None:
    route_store = FakeRouteStore([RouteRule(expression="type:AlarmNotification", channel="#alarms")])
    handler = FakeHandler()
    client = _make_client(monkeypatch, route_store=route_store, handler=handler)

    listed = client.get("/api/v1/routes")
    replaced = client.put(
        "/api/v1/routes",
        json={"rules": [{"expression": "type:PipelineNotification", "channel": "#pipelines"}]},
    )

    assert listed.json()["data"]["rules"] == [{"expression": "type:AlarmNotification", "channel": "#alarms"}]
    assert replaced.status_code == 200
    assert route_store.rules == [RouteRule(expression="type:PipelineNotification", channel="#pipelines")]
    assert handler.reloads == 1


def test_replace_routes_rejected_while_file_configured(monkeypatch) -> None:
    rules = [RouteRule(expression="type:AlarmNotification", channel="#alarms")]
    route_store = FakeRouteStore(rules, config_file="/etc/pipealert/routes.json")
    handler = FakeHandler()
    client = _make_client(monkeypatch, route_store=route_store, handler=handler)

    response = client.put(
        "/api/v1/routes",
        json={"rules": [{"expression": "type:PipelineNotification", "channel": "#pipelines"}]},
    )

    assert response.status_code == 409
    payload = response.json()
    assert payload["code"] == 409
    assert "/etc/pipealert/routes.json" in payload["message"]
    assert route_store.rules == rules
    assert handler.reloads == 0


def test_evaluate_stored_routes(monkeypatch) -> None:
    route_store = FakeRouteStore(
        [
            RouteRule(expression="type:PipelineNotification&name~prod", channel="#prod"),
            RouteRule(expression="type:PipelineNotification", channel="#pipelines"),
        ]
    )
    client = _make_client(monkeypatch, route_store=route_store)

    prod = client.post(
        "/api/v1/routes/evaluate",
        json={"attributes": {"type": "PipelineNotification", "name": "shop-prod"}},
    )
    other = client.post(
        "/api/v1/routes/evaluate",
        json={"attributes": {"type": "AlarmNotification"}},
    )

    assert prod.json()["data"]["channel"] == "#prod"
    assert other.json()["data"]["channel"] is None


def test_evaluate_supplied_routes(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post(
        "/api/v1/routes/evaluate",
        json={
            "attributes": {"type": "AlarmNotification", "alert": {"type": "nag"}},
            "rules": [{"expression": "alert.type:alarm|alert.type:nag", "channel": "#alarms"}],
        },
    )

    assert response.json()["data"]["channel"] == "#alarms"


def test_validation_error_response_format(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post("/api/v1/routes/evaluate", json={"rules": []})

    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == 422
    assert payload["message"] == "Validation error"
    assert isinstance(payload["data"], list)
    assert payload["data"]


def test_health(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
