from __future__ import annotations


def test_docs_swagger_ui(client):
    response = client.get("/docs/")
    assert response.status_code == 200
    assert b"Swagger" in response.data


def test_openapi_spec_lists_endpoints(client):
    response = client.get("/docs/openapi.json")
    assert response.status_code == 200
    data = response.get_json()
    assert data["info"]["title"] == "Currency Converter API"
    for path in (
        "/api/v1/convert",
        "/api/v1/convert-async",
        "/api/v1/health",
        "/api/v1/currencies",
        "/api/v1/history",
        "/api/v1/history/pairs",
        "/api/v1/history/bases",
        "/api/v1/history/latest",
        "/api/v1/history/{base}",
    ):
        assert path in data["paths"]
