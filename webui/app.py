import logging
import os
import sys
import threading
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

# Asegurar imports desde repo root (evitar conflicto con webui/app.py)
SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) in sys.path:
    sys.path.remove(str(SCRIPT_DIR))
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.wsdl_bridge.adapter import WsdlServiceAdapter
from app.wsdl_bridge.exceptions import NotInitializedError, ServiceInvocationError

logger = logging.getLogger(__name__)

app = Flask(__name__)

_adapter: Optional[WsdlServiceAdapter] = None
_adapter_lock = threading.Lock()


def get_adapter() -> WsdlServiceAdapter:
    """Adaptador compartido, inicializado en la primera petición."""
    global _adapter
    with _adapter_lock:
        if _adapter is None:
            adapter = WsdlServiceAdapter()
            adapter.initialize()
            _adapter = adapter
        return _adapter


def set_adapter(adapter: Optional[WsdlServiceAdapter]) -> None:
    global _adapter
    with _adapter_lock:
        _adapter = adapter


def _request_params() -> dict:
    if request.method == "POST":
        body = request.get_json(silent=True)
        if body is None:
            return {}
        if not isinstance(body, dict):
            raise ValueError("El cuerpo debe ser un objeto JSON")
        return body
    return request.args.to_dict()


@app.route("/health")
@app.route("/healthz")
def health():
    return jsonify({"ok": True})


@app.route("/api/wsdl/invoke/<method_name>", methods=["GET", "POST"])
def invoke_method(method_name: str):
    try:
        params = _request_params()
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        result = get_adapter().invoke(method_name, params)
    except NotInitializedError as e:
        return jsonify({"success": False, "error": e.message, "code": e.code}), 503
    except ServiceInvocationError as e:
        return jsonify({"success": False, "error": e.message, "code": e.code}), 502
    return jsonify(result)


@app.route("/api/wsdl/info")
def service_info():
    return jsonify(get_adapter().service_info())


@app.route("/api/wsdl/methods")
def available_methods():
    adapter = get_adapter()
    methods = adapter.available_methods()
    return jsonify({"methods": methods, "count": len(methods), "state": adapter.state.value})


@app.route("/api/wsdl/health")
def service_health():
    healthy = get_adapter().is_healthy()
    return jsonify({"healthy": healthy}), (200 if healthy else 503)


@app.route("/api/wsdl/reinitialize", methods=["POST"])
def reinitialize():
    adapter = get_adapter()
    snapshot = adapter.reinitialize()
    return jsonify({
        "success": True,
        "state": snapshot.state.value,
        "methods": snapshot.method_names,
    })


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("WSDL_BRIDGE_LOG_LEVEL", "INFO"))
    try:
        app.run(host="127.0.0.1", port=int(os.getenv("WSDL_BRIDGE_PORT", "5055")), debug=False, use_reloader=False)
    except Exception as exc:
        print(f"APP_RUN_ERROR: {exc!r}", file=sys.stderr)
        raise
