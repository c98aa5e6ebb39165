"""JSON-RPC transport shared by both chain backends."""

import itertools
import logging
from typing import Any, Optional, Tuple
from urllib.parse import unquote, urlsplit, urlunsplit

import requests

from .constants import RPC_TIMEOUT
from .exceptions import ConfigError, ProtocolError, RPCError

logger = logging.getLogger(__name__)


def split_credentials(url: str) -> Tuple[str, Optional[Tuple[str, str]]]:
    """
    Separate user:password from an RPC URL.

    Returns:
        Tuple of (url_without_credentials, (user, password) or None)

    Raises:
        ConfigError: If the URL has no http(s) scheme or no host
    """
    try:
        parts = urlsplit(url)
        parts.port  # raises on a non-numeric port
    except ValueError as e:
        raise ConfigError(f"Invalid RPC url: {url!r}") from e
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigError(f"Invalid RPC url: {url!r}")

    auth = None
    if parts.username is not None:
        auth = (unquote(parts.username), unquote(parts.password or ""))

    # host[:port] as written, IPv6 brackets included
    netloc = parts.netloc.rpartition("@")[2]
    return urlunsplit(parts._replace(netloc=netloc)), auth


class RPCClient:
    """Minimal JSON-RPC client over HTTP POST."""

    def __init__(self, url: str, timeout: float = RPC_TIMEOUT):
        self.url, self.auth = split_credentials(url)
        self.timeout = timeout
        self._ids = itertools.count(1)

    def call(self, method: str, *params: Any) -> Any:
        """
        Invoke one RPC method.

        Args:
            method: RPC method name
            *params: Positional parameters

        Returns:
            The "result" member of the response (may be None)

        Raises:
            RPCError: If the request fails or the backend returns an error
            ProtocolError: If the response is not a JSON-RPC response
        """
        request_id = next(self._ids)
        logger.debug("RPC %s %s", method, params)
        try:
            response = requests.post(
                self.url,
                json={
                    "jsonrpc": "2.0",
                    "method": method,
                    "params": list(params),
                    "id": request_id,
                },
                auth=self.auth,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RPCError(f"Network error during RPC call {method}: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            # Bitcoin-style nodes answer RPC errors with HTTP 500 and a JSON body,
            # so only a non-JSON error page is a transport failure
            if response.status_code != 200:
                raise RPCError(
                    f"RPC request {method} failed with status {response.status_code}"
                ) from e
            raise ProtocolError(f"RPC response to {method} is not JSON") from e

        if not isinstance(body, dict):
            raise ProtocolError(f"RPC response to {method} is not a JSON object")

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RPCError(
                    f"RPC error from {method}: {error.get('message', error)}",
                    code=error.get("code"),
                )
            raise RPCError(f"RPC error from {method}: {error}")

        if response.status_code != 200:
            raise RPCError(f"RPC request {method} failed with status {response.status_code}")

        if "result" not in body:
            raise ProtocolError(f"RPC response to {method} has no result")

        return body["result"]
