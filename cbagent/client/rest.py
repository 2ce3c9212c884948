"""
Authenticated calls to the Couchbase administrative REST API.
"""

import logging
from typing import Optional

import requests

from ..config import FACTORY_ADMIN_PASSWORD, FACTORY_ADMIN_USERNAME, NodeConfig

logger = logging.getLogger(__name__)


class RestError(Exception):
    """A request to the admin API failed."""


class RestStatusError(RestError):
    def __init__(self, method: str, url: str, status_code: int, body: str):
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"Failed to {method} to {url}.  Status code: {status_code}.  Body: {body}"
        )


class RestDecodeError(RestError):
    """The response body was not JSON of the expected shape."""


class ClusterRestClient:
    def __init__(self, config: NodeConfig, timeout: float = 30):
        """
        Args:
            config: Local node config; supplies the admin port and credentials
            timeout: Per-request timeout in seconds
        """
        self.config = config
        self.timeout = timeout
        self.session = requests.Session()

    def url(self, host: str, path: str) -> str:
        """Admin API URL on host, using the local admin port."""
        return f"http://{host}:{self.config.port}{path}"

    def fetch_json(self, url: str, expected: type = dict):
        """
        GET url with the configured admin identity and decode the body.

        Args:
            expected: dict or list; any other JSON shape is a RestDecodeError
        """
        try:
            response = self.session.get(url, auth=self._auth(False), timeout=self.timeout)
        except requests.RequestException as e:
            raise RestError(f"GET {url} failed: {e}") from e

        if not 200 <= response.status_code <= 299:
            raise RestStatusError("GET", url, response.status_code, response.text)

        try:
            value = response.json()
        except ValueError as e:
            raise RestDecodeError(f"GET {url} returned invalid JSON: {e}") from e

        if not isinstance(value, expected):
            raise RestDecodeError(
                f"GET {url} returned {type(value).__name__}, expected {expected.__name__}"
            )
        return value

    def submit_form(self, url: str, data: dict, factory_default_credentials: bool = False):
        """
        POST url-encoded form data.

        The factory default identity is used only when asked for; it is needed
        for the call that sets the real credentials.
        """
        try:
            response = self.session.post(
                url,
                data=data,
                auth=self._auth(factory_default_credentials),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RestError(f"POST {url} failed: {e}") from e

        if not 200 <= response.status_code <= 299:
            raise RestStatusError("POST", url, response.status_code, response.text)

    def status_code(self, url: str) -> Optional[int]:
        """Unauthenticated GET; returns the status, or None if unreachable."""
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug(f"GET {url} unreachable: {e}")
            return None
        response.close()
        return response.status_code

    def close(self):
        """Close the session."""
        self.session.close()

    def _auth(self, factory_default_credentials: bool):
        if factory_default_credentials:
            return FACTORY_ADMIN_USERNAME, FACTORY_ADMIN_PASSWORD
        return self.config.admin_username, self.config.admin_password
