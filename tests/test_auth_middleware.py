import os
import sys

import pytest
from flask import Flask, jsonify

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from api.middleware.auth_middleware import AuthMiddleware


def create_app(token):
    app = Flask(__name__)
    AuthMiddleware.init_app(app, token)

    @app.route("/protected")
    @AuthMiddleware.require_auth
    def protected():
        return jsonify({"status": "ok"})

    return app


def test_missing_token():
    client = create_app("testtoken").test_client()
    response = client.get("/protected")
    assert response.status_code == 401


def test_invalid_token():
    client = create_app("testtoken").test_client()
    response = client.get("/protected", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401


def test_valid_bearer_token():
    client = create_app("testtoken").test_client()
    response = client.get("/protected", headers={"Authorization": "Bearer testtoken"})
    assert response.status_code == 200


def test_valid_header_token():
    client = create_app("testtoken").test_client()
    response = client.get("/protected", headers={"X-API-Token": "testtoken"})
    assert response.status_code == 200


def test_no_token_allows_loopback():
    client = create_app("").test_client()
    response = client.get("/protected", environ_overrides={"REMOTE_ADDR": "127.0.0.1"})
    assert response.status_code == 200


def test_no_token_rejects_public_remote():
    client = create_app("").test_client()
    response = client.get("/protected", environ_overrides={"REMOTE_ADDR": "198.51.100.7"})
    assert response.status_code == 401


@pytest.mark.parametrize(
    "remote,trusted",
    [
        ("127.0.0.1", True),
        ("::1", True),
        ("10.1.2.3", True),
        ("192.168.1.5", True),
        ("fe80::1", True),
        ("[::1]", True),
        ("172.31.255.1", True),
        ("fd00::5", True),
        ("224.0.0.251", True),
        ("::ffff:192.168.1.5", True),
        ("::ffff:127.0.0.1", True),
        ("8.8.8.8", False),
        ("198.51.100.7", False),
        ("203.0.113.5", False),
        ("192.0.2.1", False),
        ("198.18.0.1", False),
        ("240.0.0.1", False),
        ("0.0.0.1", False),
        ("::ffff:8.8.8.8", False),
        ("172.32.0.1", False),
        ("2001:db8::1", False),
        ("", False),
        ("not-an-ip", False),
    ],
)
def test_is_trusted_local(remote, trusted):
    assert AuthMiddleware.is_trusted_local(remote) is trusted
