"""Tests for Graph authentication."""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from policy_migrate.core.auth import GraphAuth
from policy_migrate.core.errors import TransportError


def _token_response(status_code: int, payload: dict | None = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = text
    return response


class TestGraphAuth:
    """Tests for GraphAuth class."""

    def test_init_with_credentials(self) -> None:
        auth = GraphAuth(
            client_id="client",
            client_secret="secret",
            authority_url="https://login.example.com/",
        )

        assert auth.client_id == "client"
        assert auth.client_secret == "secret"
        assert auth.authority_url == "https://login.example.com"
        assert auth.verify_credentials() is True

    def test_init_missing_credentials(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch("policy_migrate.core.auth.load_dotenv"):
            with pytest.raises(ValueError, match="Missing Graph API credentials"):
                GraphAuth()

    def test_init_from_environment(self) -> None:
        env = {"GRAPH_CLIENT_ID": "env-client", "GRAPH_CLIENT_SECRET": "env-secret"}
        with patch.dict(os.environ, env, clear=True), patch("policy_migrate.core.auth.load_dotenv"):
            auth = GraphAuth()

        assert auth.client_id == "env-client"
        assert auth.authority_url == "https://login.microsoftonline.com"

    def test_token_url(self) -> None:
        auth = GraphAuth(client_id="c", client_secret="s")

        assert auth.token_url("contoso.onmicrosoft.com") == (
            "https://login.microsoftonline.com/contoso.onmicrosoft.com/oauth2/v2.0/token"
        )

    def test_acquire_token(self) -> None:
        auth = GraphAuth(client_id="c", client_secret="s")

        with patch("policy_migrate.core.auth.requests.post") as post:
            post.return_value = _token_response(200, {"access_token": "abc"})
            token = auth.acquire_token("tenant-1")

        assert token == "abc"
        url = post.call_args.args[0]
        data = post.call_args.kwargs["data"]
        assert url.endswith("/tenant-1/oauth2/v2.0/token")
        assert data["grant_type"] == "client_credentials"
        assert data["scope"] == "https://graph.microsoft.com/.default"

    def test_acquire_token_rejected(self) -> None:
        auth = GraphAuth(client_id="c", client_secret="s")

        with patch("policy_migrate.core.auth.requests.post") as post:
            post.return_value = _token_response(401, text='{"error":"invalid_client"}')
            with pytest.raises(TransportError) as exc_info:
                auth.acquire_token("tenant-1")

        assert exc_info.value.status_code == 401
        assert "invalid_client" in exc_info.value.body

    def test_acquire_token_connection_error(self) -> None:
        auth = GraphAuth(client_id="c", client_secret="s")

        with patch("policy_migrate.core.auth.requests.post", side_effect=requests.ConnectionError("boom")):
            with pytest.raises(TransportError, match="Token request failed"):
                auth.acquire_token("tenant-1")

    def test_acquire_token_requires_tenant(self) -> None:
        auth = GraphAuth(client_id="c", client_secret="s")

        with pytest.raises(ValueError, match="tenant ID is required"):
            auth.acquire_token("")

    def test_get_headers(self) -> None:
        headers = GraphAuth.get_headers("tok")

        assert headers["Authorization"] == "Bearer tok"
        assert headers["Content-Type"] == "application/json"
