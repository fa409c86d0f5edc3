"""HTTP client wrapper for the Microsoft Graph device management API."""

import time
from collections.abc import Iterator
from typing import Any

import requests
from rich.console import Console

from ..models.config import MigrationConfig, PolicyKind
from .auth import GraphAuth
from .errors import TransportError


console = Console()


class GraphClient:
    """HTTP client for Graph with app-only authentication and retries."""

    RETRY_STATUS_CODES = (429, 500, 502, 503, 504)
    NEXT_LINK = "@odata.nextLink"

    def __init__(
        self,
        config: MigrationConfig,
        auth: GraphAuth | None = None,
        timeout: int = 60,
    ) -> None:
        """Initialize client.

        Args:
            config: Migration configuration (API version, retry settings)
            auth: GraphAuth instance (created from env on first connect if not provided)
            timeout: Per-request timeout in seconds
        """
        self.config = config
        self._auth = auth
        self.timeout = timeout
        self.session: requests.Session | None = None
        self.tenant_id: str | None = None

    @property
    def auth(self) -> GraphAuth:
        """Get or create GraphAuth (lazy initialization)."""
        if self._auth is None:
            self._auth = GraphAuth()
        return self._auth

    @property
    def is_connected(self) -> bool:
        return self.session is not None

    # -------------------------------------------------------------------------
    # Session bracketing
    # -------------------------------------------------------------------------

    def connect(self, tenant_id: str) -> None:
        """Open an authenticated session against a tenant.

        Connecting to the tenant that is already connected is a no-op.

        Raises:
            TransportError: If token acquisition fails
        """
        if self.session is not None and self.tenant_id == tenant_id:
            return
        self.disconnect()

        token = self.auth.acquire_token(tenant_id)
        session = requests.Session()
        session.headers.update(GraphAuth.get_headers(token))
        self.session = session
        self.tenant_id = tenant_id

    def disconnect(self) -> None:
        """Close the current session, if any."""
        if self.session is not None:
            self.session.close()
        self.session = None
        self.tenant_id = None

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def _retry_delay(self, response: requests.Response, attempt: int) -> float:
        """Delay before retrying, honoring a numeric Retry-After header."""
        retry_after = response.headers.get("Retry-After", "")
        if retry_after.isdigit():
            return min(float(retry_after), self.config.retry.max_backoff_seconds)
        return self.config.retry.delay_for(attempt)

    def _request(
        self,
        method: str,
        url: str,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to the Graph API.

        Args:
            method: HTTP method
            url: Absolute URL (e.g. a next link) or resource path
            json_data: Optional JSON body data

        Returns:
            Parsed JSON response

        Raises:
            TransportError: On API errors, once retries are exhausted
        """
        if self.session is None:
            raise TransportError("Not connected to a tenant. Call connect() first.")

        if not url.startswith(("http://", "https://")):
            url = self.config.resource_url(url)

        attempt = 0
        while True:
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    json=json_data if method in ("POST", "PUT", "PATCH") else None,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise TransportError(f"Request failed: {e}") from e

            if (
                response.status_code in self.RETRY_STATUS_CODES
                and attempt < self.config.retry.max_retries
            ):
                delay = self._retry_delay(response, attempt)
                console.print(
                    f"[yellow]{method} {url} returned {response.status_code}, "
                    f"retrying in {delay:.1f}s ({attempt + 1}/{self.config.retry.max_retries})"
                )
                time.sleep(delay)
                attempt += 1
                continue

            if response.status_code >= 400:
                error_msg = f"API error {response.status_code}: {response.text[:500]}"
                raise TransportError(error_msg, response.status_code, response.text, response)

            # Handle empty responses
            if not response.content:
                return {}

            return response.json()  # type: ignore[no-any-return]

    def get(self, url: str) -> dict[str, Any]:
        """Make a GET request."""
        return self._request("GET", url)

    def post(self, url: str, json_data: dict[str, Any]) -> dict[str, Any]:
        """Make a POST request."""
        return self._request("POST", url, json_data)

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------

    @staticmethod
    def collection_url(path: str, filter_expression: str | None = None) -> str:
        """Append a $filter expression to a resource path."""
        if not filter_expression:
            return path
        separator = "&" if "?" in path else "?"
        return f"{path}{separator}$filter={filter_expression}"

    def iter_pages(self, url: str) -> Iterator[list[dict[str, Any]]]:
        """Yield the `value` array of each page, following next links."""
        next_url: str | None = url
        while next_url:
            page = self.get(next_url)
            yield page.get("value", [])
            next_url = page.get(self.NEXT_LINK)

    def iter_collection(
        self,
        path: str,
        filter_expression: str | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield every item of a paginated collection, one page at a time."""
        for page in self.iter_pages(self.collection_url(path, filter_expression)):
            yield from page

    def get_all(
        self,
        path: str,
        filter_expression: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch a complete paginated collection.

        Raises:
            TransportError: If any page request fails (no partial result)
        """
        return list(self.iter_collection(path, filter_expression))

    # -------------------------------------------------------------------------
    # Policy Operations
    # -------------------------------------------------------------------------

    @staticmethod
    def settings_catalog_filter(platform: str | None = None) -> str:
        """Build the settings catalog filter expression."""
        expression = "technologies has 'mdm'"
        if platform:
            expression += f" and platforms has '{platform}'"
        return expression

    def iter_policies(
        self,
        kind: PolicyKind,
        platform: str | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield raw policies of a kind.

        Args:
            kind: Policy kind to list
            platform: Optional settings catalog platform filter (windows10 or macOS)
        """
        if kind is PolicyKind.SETTINGS_CATALOG:
            yield from self.iter_collection(
                kind.collection_path,
                self.settings_catalog_filter(platform),
            )
        else:
            yield from self.iter_collection(kind.collection_path)

    def get_policy_settings(self, policy_id: str) -> list[dict[str, Any]]:
        """Fetch all setting records of a settings catalog policy.

        Setting definitions are expanded inline.
        """
        path = (
            f"deviceManagement/configurationPolicies('{policy_id}')"
            "/settings?$expand=settingDefinitions"
        )
        return self.get_all(path)

    def get_oma_setting_plaintext(self, configuration_id: str, secret_reference_id: str) -> str:
        """Resolve an encrypted OMA setting to its plaintext value.

        Args:
            configuration_id: Device configuration ID
            secret_reference_id: The setting's secretReferenceValueId

        Returns:
            Plaintext value
        """
        path = (
            f"deviceManagement/deviceConfigurations/{configuration_id}"
            f"/getOmaSettingPlaintextValue(secretReferenceValueId='{secret_reference_id}')"
        )
        response = self.get(path)
        return response.get("value", "")

    def create_policy(self, kind: PolicyKind, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a policy in the connected tenant.

        Returns:
            The created object as returned by Graph
        """
        return self.post(kind.create_path, json_data=payload)

    # -------------------------------------------------------------------------
    # Health Check
    # -------------------------------------------------------------------------

    def verify_connection(self) -> bool:
        """Verify API connectivity with a lightweight read."""
        response = self.get("deviceManagement/deviceConfigurations?$top=1&$select=id")
        return "value" in response
