import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from errors import ConfigurationError, RemoteError, UpstreamProtocolError

logger = logging.getLogger("rps.platform")


def _error_messages(payload: Any) -> List[str]:
    if not isinstance(payload, dict):
        return []
    errors = payload.get("errors") or []
    if not isinstance(errors, list):
        errors = [errors]
    messages: List[str] = []
    for err in errors:
        if isinstance(err, dict):
            messages.append(str(err.get("message") or err))
        else:
            messages.append(str(err))
    return messages


class PlatformClient:
    """
    Thin GraphQL transport for the token platform.

    One POST per call, bearer auth, no retries. The underlying requests.Session is
    shared by every request handler so its pool must be sized for concurrent sagas.
    """

    def __init__(
        self,
        url: Optional[str],
        token: Optional[str],
        timeout: float = 20,
        pool_size: int = 20,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def execute(self, document: str, variables: Optional[Dict[str, Any]] = None, operation: Optional[str] = None) -> Dict[str, Any]:
        if not self.url:
            raise ConfigurationError("PLATFORM_URL not configured")
        body: Dict[str, Any] = {"query": document, "variables": variables or {}}
        if operation:
            body["operationName"] = operation
        try:
            resp = self.session.post(self.url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("platform_request_failed op=%s error=%s", operation, exc)
            raise RemoteError([f"Platform unreachable: {exc}"], is_network_error=True) from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        messages = _error_messages(payload)
        if messages:
            logger.warning("platform_graphql_errors op=%s status=%s errors=%s", operation, resp.status_code, messages)
            raise RemoteError(messages, is_network_error=False)
        if resp.status_code >= 400:
            logger.warning("platform_http_error op=%s status=%s", operation, resp.status_code)
            raise RemoteError([f"Platform returned HTTP {resp.status_code}: {(resp.text or '')[:200]}"], is_network_error=False)
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            logger.error("platform_response_without_data op=%s body=%s", operation, (resp.text or "")[:200])
            raise UpstreamProtocolError(f"{operation or 'operation'} returned no data object")
        return data
