"""
Task Sync - Remote Authority Client

Sends one HTTP request per queued intent and probes the remote for
reachability. Failures are raised as typed SyncFailure errors so the
reconciliation pass can record them against the intent.
"""

import logging
from typing import Optional

import httpx

from tasksync.config import settings
from tasksync.errors import RemoteApplicationError, RemoteConnectivityError
from tasksync.schemas import Payload

logger = logging.getLogger(__name__)


class RemoteClient:
    """
    HTTP client for the remote task API.

    create, update and delete may be sent more than once for the same
    intent (a failed attempt is retried on a later pass with the same
    payload), so the remote must tolerate repeats keyed by task id.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        connectivity_timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = settings.REMOTE_TIMEOUT_SECONDS if timeout is None else timeout
        self.connectivity_timeout = (
            settings.CONNECTIVITY_TIMEOUT_SECONDS
            if connectivity_timeout is None
            else connectivity_timeout
        )
        self.transport = transport

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    def apply(self, operation: str, payload: Payload, task_id: str):
        """
        Apply a single operation on the remote.

        Raises:
            RemoteApplicationError: the remote rejected the request
            RemoteConnectivityError: the remote could not be reached
        """
        body = payload.to_request_body()
        try:
            with self._client(self.timeout) as client:
                if operation == "create":
                    response = client.post("/tasks", json=body)
                elif operation == "update":
                    response = client.put(f"/tasks/{task_id}", json=body)
                elif operation == "delete":
                    response = client.delete(f"/tasks/{task_id}")
                else:
                    raise RemoteApplicationError(f"Unknown operation: {operation}")
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response) or str(e)
            raise RemoteApplicationError(
                f"API Error: {message}", status_code=e.response.status_code
            ) from e
        except httpx.TransportError as e:
            raise RemoteConnectivityError(f"API Error: {str(e) or type(e).__name__}") from e

    def probe_connectivity(self) -> bool:
        """
        Check whether the remote is reachable.

        A 4xx answer still counts as reachable; only 5xx, timeouts and
        connection failures return False. A malformed base URL is
        reported as unreachable too.
        """
        try:
            with self._client(self.connectivity_timeout) as client:
                response = client.get("/health")
            return response.status_code < 500
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning("Connectivity check failed: %s", e)
            return False


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message") or body.get("detail") or body.get("error")
    return None
