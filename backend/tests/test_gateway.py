import pytest

from backend.gateway.server import create_app


@pytest.fixture
def gateway_client():
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def test_health(gateway_client):
    assert gateway_client.get("/health").get_json() == {"status": "ok"}
    assert gateway_client.get("/").get_json() == {"status": "gateway_ok"}


def test_unknown_route_is_json(gateway_client):
    response = gateway_client.get("/nowhere")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_blueprints_mounted(gateway_client, routes_service):
    assert gateway_client.get("/events/").status_code == 200
    assert gateway_client.post("/auth/signup", json={}).status_code == 400


def test_cors_allows_dev_origin(gateway_client):
    response = gateway_client.get("/health", headers={"Origin": "http://localhost:5173"})
    assert response.headers.get("Access-Control-Allow-Origin") == "http://localhost:5173"
