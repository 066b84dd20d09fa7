from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from shipping_rate_analysis.api.normalize import normalize_quotes
from shipping_rate_analysis.api.transport import RequestsTransport
from shipping_rate_analysis.errors import AUTH, RATE_LIMIT, TIMEOUT, QuoteError
from shipping_rate_analysis.models import QuoteRequest, QuoteResponse


@dataclass
class QuoteServiceConfig:
    base_url: str
    token: str = ""
    path: str = "/quotes"

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.path.lstrip("/")


class QuoteServiceClient:
    """Client for an external quoting service.

    One POST per (shipment, account). The service owns carrier credentials
    and rating protocols; this side only sends the package, the lane and the
    requested service codes, and reads back `{success, rates, error}`.

    HTTP failures are raised as QuoteError (with the status code) so the
    quoting stage can categorize them; a 200 response with an empty rate
    list is a successful, empty answer.
    """

    def __init__(
        self,
        cfg: QuoteServiceConfig,
        transport: Optional[RequestsTransport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport()
        self.logger: logging.Logger = logger or logging.getLogger(
            "shipping_rate_analysis.api.quote_service"
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.cfg.token:
            headers["Authorization"] = f"Bearer {self.cfg.token}"
        return headers

    @staticmethod
    def build_body(request: QuoteRequest) -> Dict[str, Any]:
        acct = request.account
        return {
            "carrier_id": acct.carrier_id,
            "carrier_type": acct.carrier_type.value,
            "account_name": acct.account_name,
            "service_codes": list(request.requested_service_codes),
            "shipment": {
                "shipment_id": request.shipment_id,
                "tracking_id": request.tracking_id,
                "origin_zip": request.origin_zip,
                "dest_zip": request.dest_zip,
                "weight": request.weight,
                "dimensions": {
                    "length": request.length,
                    "width": request.width,
                    "height": request.height,
                },
                "is_residential": request.is_residential,
            },
        }

    def quote(self, request: QuoteRequest) -> QuoteResponse:
        body = self.build_body(request)
        self.logger.debug(
            "POST %s carrier=%s shipment=%s codes=%s",
            self.cfg.url, request.account.carrier_id, request.shipment_id,
            ",".join(request.requested_service_codes),
        )
        try:
            resp = self.transport.post(self.cfg.url, headers=self._headers(), json=body)
        except requests.Timeout as e:
            raise QuoteError(f"timeout calling quoting service: {e}", category=TIMEOUT) from e
        except requests.ConnectionError as e:
            raise QuoteError(f"connection error calling quoting service: {e}", category=TIMEOUT) from e

        status = resp.status_code
        if status in (401, 403):
            raise QuoteError(f"auth rejected by quoting service ({status})", status_code=status, category=AUTH)
        if status == 429:
            raise QuoteError("rate limit exceeded (429)", status_code=status, category=RATE_LIMIT)
        if status >= 400:
            raise QuoteError(f"quoting service error ({status}): {resp.text[:200]}", status_code=status)

        try:
            data = resp.json()
        except ValueError as e:
            raise QuoteError(f"quoting service returned non-JSON body: {e}", status_code=status) from e
        if not isinstance(data, dict):
            raise QuoteError("quoting service returned an unexpected body", status_code=status)

        if data.get("success") is False:
            return QuoteResponse(success=False, rates=(), error=str(data.get("error") or "Unknown error"))
        return QuoteResponse(success=True, rates=normalize_quotes(data.get("rates") or [], request.account))


__all__ = ["QuoteServiceConfig", "QuoteServiceClient"]
