# tests/api/test_cors.py
import os


def test_cors_preflight_options(client):
    headers = {
        "Origin": os.getenv("NR_ALLOWED_ORIGINS", "http://localhost:5173").split(",")[0],
        "Access-Control-Request-Method": "POST",
    }
    r = client.options("/modelos/entrenar", headers=headers)
    assert r.status_code in (200, 204)
    assert "access-control-allow-origin" in r.headers
