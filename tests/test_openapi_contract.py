"""
test_openapi_contract.py — Contract test to ensure the OpenAPI schema is served.

What this does:
  - Requests GET /openapi.json through the in-process test client.
  - Verifies that the endpoints editors, operators and the CLI rely on are present.

Common examples:
  pytest -q tests/test_openapi_contract.py
"""


def test_openapi_served(client):
    r = client.get("/openapi.json")
    assert r.status_code == 200
    paths = r.json()["paths"]
    for p in [
        "/healthz",
        "/documents",
        "/documents/{document_id}",
        "/regression",
        "/regression/{document_id}",
        "/regression/{document_id}/mark-intentional",
        "/regression/{document_id}/reset-baseline",
        "/regression/{document_id}/settings",
        "/run-detection",
    ]:
        assert p in paths
