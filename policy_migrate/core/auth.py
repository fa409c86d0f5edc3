"""Client-credentials authentication for Microsoft Graph."""

import os

import requests
from dotenv import load_dotenv

from .errors import TransportError


class GraphAuth:
    """Acquires app-only access tokens for a tenant."""

    SCOPE = "https://graph.microsoft.com/.default"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        authority_url: str | None = None,
    ) -> None:
        """Initialize authentication with app registration credentials.

        Args:
            client_id: Application (client) ID (or load from GRAPH_CLIENT_ID env)
            client_secret: Client secret (or load from GRAPH_CLIENT_SECRET env)
            authority_url: Login authority (or load from GRAPH_AUTHORITY_URL env)
        """
        load_dotenv()

        self.client_id = client_id or os.getenv("GRAPH_CLIENT_ID", "")
        self.client_secret = client_secret or os.getenv("GRAPH_CLIENT_SECRET", "")
        self.authority_url = (
            authority_url or os.getenv("GRAPH_AUTHORITY_URL", "https://login.microsoftonline.com")
        ).rstrip("/")

        if not self.client_id or not self.client_secret:
            raise ValueError(
                "Missing Graph API credentials. Set GRAPH_CLIENT_ID and "
                "GRAPH_CLIENT_SECRET environment variables or pass them directly."
            )

    def token_url(self, tenant_id: str) -> str:
        """Token endpoint for a tenant."""
        return f"{self.authority_url}/{tenant_id}/oauth2/v2.0/token"

    def acquire_token(self, tenant_id: str, timeout: int = 30) -> str:
        """Request an access token for a tenant.

        Args:
            tenant_id: Directory (tenant) ID or verified domain
            timeout: Request timeout in seconds

        Returns:
            Bearer access token

        Raises:
            ValueError: If no tenant is given
            TransportError: If the token request fails
        """
        if not tenant_id:
            raise ValueError("A tenant ID is required to authenticate")

        try:
            response = requests.post(
                self.token_url(tenant_id),
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": self.SCOPE,
                },
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Token request failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(
                f"Authentication failed for tenant {tenant_id}: "
                f"{response.status_code} {response.text[:500]}",
                response.status_code,
                response.text,
            )

        token = response.json().get("access_token", "")
        if not token:
            raise TransportError(f"No access token returned for tenant {tenant_id}")
        return token

    @staticmethod
    def get_headers(token: str) -> dict[str, str]:
        """Generate request headers for an access token."""
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def verify_credentials(self) -> bool:
        """Verify that credentials are set (does not test API connectivity)."""
        return bool(self.client_id and self.client_secret and self.authority_url)
