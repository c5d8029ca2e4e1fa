from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

import webui.app as webui_app
from app.wsdl_bridge.adapter import AdapterSnapshot, AdapterState
from app.wsdl_bridge.exceptions import NotInitializedError, ServiceInvocationError
from app.wsdl_bridge.models import OperationCatalog

app = webui_app.app


class StubAdapter:
    def __init__(self, healthy=True, error=None):
        self.healthy = healthy
        self.error = error
        self.calls = []
        self.reinitialized = 0
        self.state = AdapterState.READY

    def invoke(self, name, params=None):
        self.calls.append((name, params))
        if self.error is not None:
            raise self.error
        return {"success": True, "data": name.upper()}

    def available_methods(self):
        return ["Add", "Ping"]

    def is_healthy(self):
        return self.healthy

    def service_info(self):
        return {"state": self.state.value, "availableMethodsCount": 2}

    def reinitialize(self):
        self.reinitialized += 1
        return AdapterSnapshot(
            state=AdapterState.DEGRADED_DEFAULTS,
            catalog=OperationCatalog(names=["GetVersion", "Echo", "Ping"], source="defaults"),
        )


@pytest.fixture
def stub(monkeypatch):
    adapter = StubAdapter()
    monkeypatch.setattr(webui_app, "_adapter", adapter)
    return adapter


def test_health_returns_200_and_ok_flag():
    client = app.test_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert (response.get_json() or {}).get("ok") is True


def test_healthz_alias_returns_200_and_ok_flag():
    client = app.test_client()
    response = client.get("/healthz")

    assert response.status_code == 200
    assert (response.get_json() or {}).get("ok") is True


def test_invoke_post_passes_json_body(stub):
    response = app.test_client().post("/api/wsdl/invoke/Add", json={"Amount": "5"})

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "data": "ADD"}
    assert stub.calls == [("Add", {"Amount": "5"})]


def test_invoke_get_uses_query_string(stub):
    app.test_client().get("/api/wsdl/invoke/Echo?text=hola")

    assert stub.calls == [("Echo", {"text": "hola"})]


def test_invoke_rejects_non_object_body(stub):
    response = app.test_client().post("/api/wsdl/invoke/Add", json=[1, 2])

    assert response.status_code == 400
    assert stub.calls == []


@pytest.mark.parametrize(
    "error, status",
    [
        (NotInitializedError(), 503),
        (ServiceInvocationError("Add", "timeout"), 502),
    ],
)
def test_invoke_maps_adapter_errors(stub, error, status):
    stub.error = error

    response = app.test_client().post("/api/wsdl/invoke/Add", json={})

    assert response.status_code == status
    body = response.get_json()
    assert body["success"] is False
    assert body["code"] == error.code


def test_service_health_is_503_when_unhealthy(stub):
    stub.healthy = False

    response = app.test_client().get("/api/wsdl/health")

    assert response.status_code == 503
    assert response.get_json() == {"healthy": False}


def test_methods_and_info_routes(stub):
    client = app.test_client()

    methods = client.get("/api/wsdl/methods").get_json()
    info = client.get("/api/wsdl/info").get_json()

    assert methods == {"methods": ["Add", "Ping"], "count": 2, "state": "ready"}
    assert info["state"] == "ready"


def test_reinitialize_returns_new_state(stub):
    response = app.test_client().post("/api/wsdl/reinitialize")

    assert response.status_code == 200
    assert stub.reinitialized == 1
    assert response.get_json()["methods"] == ["GetVersion", "Echo", "Ping"]
    assert response.get_json()["state"] == "degraded_defaults"
