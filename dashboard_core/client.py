from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import requests

from dashboard_core.ranges import DateRange


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class BackendError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.path = path


class BackendClient:
    """Reads analytics data from the backend API.

    The base URL is always passed in by the caller so the client never depends
    on process environment.
    """

    def __init__(self, base_url: str, *, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        logger.info("%s %s", method, url)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendError(f"request to {path} failed: {exc}", path=path) from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = None
            if isinstance(body, Mapping):
                message = body.get("message") or body.get("error")
            raise BackendError(
                message or f"backend returned {resp.status_code} for {path}",
                status_code=resp.status_code,
                path=path,
            )
        if body is None:
            raise BackendError(f"backend returned a non-JSON body for {path}", status_code=resp.status_code, path=path)
        return body

    @staticmethod
    def _data(body: Any) -> Any:
        if isinstance(body, Mapping) and "data" in body:
            return body["data"]
        return body

    def analytics_summary(self) -> Dict[str, Any]:
        return self._data(self._request("GET", "/api/analytics/summary")) or {}

    def lead_performance(self, date_range: DateRange) -> Dict[str, Any]:
        body = self._request("GET", "/api/analytics/leads/performance", params=date_range.to_params())
        return self._data(body) or {}

    def campaigns(self) -> List[Dict[str, Any]]:
        return self._data(self._request("GET", "/api/analytics/campaigns")) or []

    def revenue(self) -> Dict[str, Any]:
        return self._data(self._request("GET", "/api/analytics/revenue")) or {}

    def insights_query(self, query: str, context: str = "all") -> Dict[str, Any]:
        # Query results come back unwrapped: {"results": [...], "result_count": n}
        return self._request("POST", "/api/insights/query", json={"query": query, "context": context}) or {}
