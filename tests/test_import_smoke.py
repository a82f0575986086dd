import importlib
import pytest


@pytest.mark.parametrize("module", [
    "hazardbot.main",
    "hazardbot.queue.jobs",
    "hazardbot.core.controller",
    "hazardbot.messaging.webhook",
])
def test_import_graph_smoke(module):
    """The import graph loads without a reachable Redis."""
    assert importlib.import_module(module) is not None


def test_routes_registered():
    from hazardbot.main import app
    # included routers are not always flattened into app.routes, the schema lists every path
    paths = {getattr(r, "path", None) for r in app.routes} | set(app.openapi()["paths"])
    assert {"/", "/health", "/api/turn", "/admin/conversation/{conversation_id}", "/admin/stats"} <= paths
