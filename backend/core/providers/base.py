"""HTTP plumbing shared by upstream transports."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

import requests
from requests import Response

from ..errors import MappingError, TransportError


@dataclass
class RequestConfig:
    timeout: float = 5.0
    transient_statuses: Iterable[int] = (429, 500, 502, 503, 504)


class HttpTransport:
    """Base class issuing JSON GET requests and classifying failures.

    Network errors, timeouts, 5xx and 429 raise a transient
    :class:`TransportError`; other 4xx raise a non-transient one.  Subclasses
    may pass ``not_found_ok=True`` to get ``None`` back for a 404.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or requests.Session()
        self._log = logging.getLogger(self.__class__.__name__)

    def _get_json(self, url: str, params: Mapping[str, Any], not_found_ok: bool = False) -> Optional[Any]:
        try:
            response = self.session.get(url, params=params, timeout=self.request_config.timeout)
        except requests.Timeout as exc:
            self._log.error("Request to %s timed out", url)
            raise TransportError("timeout") from exc
        except requests.RequestException as exc:
            self._log.error("Request to %s failed: %s", url, exc)
            raise TransportError("request failed") from exc
        if response.status_code == 404 and not_found_ok:
            return None
        self._handle_status(response)
        return self._json(response)

    def _handle_status(self, response: Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status >= 500 or status in self.request_config.transient_statuses:
            self._log.warning("Upstream returned %s: %s", status, response.text)
            raise TransportError(f"HTTP {status}", status_code=status, transient=True)
        self._log.error("Upstream rejected request with %s: %s", status, response.text)
        raise TransportError(f"HTTP {status}", status_code=status, transient=False)

    def _json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON", exc_info=exc)
            raise MappingError("invalid json from upstream") from exc


__all__ = ["HttpTransport", "RequestConfig"]
