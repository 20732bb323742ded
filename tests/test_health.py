async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200

    payload = response.json()
    assert payload["status_code"] == 200
    assert payload["status"] == "success"
    assert payload["message"] == "Service is healthy"
    assert payload["data"] == {"status": "ok", "service": "Website Improver"}


async def test_versioned_health_check(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200


async def test_root_info(client):
    response = await client.get("/")
    assert response.status_code == 200
    payload = response.json()
    assert payload["app_name"] == "Website Improver API"
    assert payload["version"] == "1.0.0"
    assert payload["docs_url"] == "/docs"
    assert payload["api_base"] == "/api/v1"


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/v1/nope")
    assert response.status_code == 404
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["error"]["code"] == "HTTP_ERROR"
