from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

RETRY_STATUS_CODES: Tuple[int, ...] = (429, 500, 502, 503, 504)


class RequestsTransport:
    """Requests session wrapper with retry/backoff for the quoting service.

    Retries connection errors and RETRY_STATUS_CODES; once retries are
    exhausted the final response is returned to the caller rather than
    raised, so the client can categorize it.
    """

    def __init__(
        self,
        timeout: int = 30,
        max_retries: int = 3,
        backoff_factor: float = 0.3,
        *,
        default_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.session = requests.Session()
        self.timeout = timeout
        if default_headers:
            self.session.headers.update(default_headers)

        retry = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=RETRY_STATUS_CODES,
            allowed_methods=("GET", "POST"),
            raise_on_status=False,
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, json: Any = None, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self.session.post(url, headers=headers, json=json, params=params, timeout=self.timeout)

    def close(self) -> None:
        self.session.close()
