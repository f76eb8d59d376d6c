# tests/test_decorators.py
import pytest


@pytest.mark.parametrize("header", [None, "", "Bearer wrong", "admin-test-token", "Token admin-test-token"])
def test_admin_token_required_blocks(client, header):
    headers = {"Authorization": header} if header is not None else {}
    resp = client.get("/admin/stats", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Unauthorized"


def test_admin_token_required_allows_bearer(client, admin_headers):
    resp = client.get("/admin/stats", headers=admin_headers)
    assert resp.status_code == 200


def test_admin_closed_without_configured_token(app, client):
    # sem ADMIN_TOKEN nem "Bearer " vazio passa
    app.config["ADMIN_TOKEN"] = ""
    resp = client.get("/admin/stats", headers={"Authorization": "Bearer "})
    assert resp.status_code == 401
