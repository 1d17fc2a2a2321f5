"""Cliente HTTP del almacén remoto de registros diarios."""

from __future__ import annotations

import logging
from typing import Any

import requests

from timekeeper.errors import NetworkError, ResponseFormatError, ServerError
from timekeeper.model import DayRecord

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3030"
DEFAULT_TIMEOUT_S = 10.0


class DayRecordClient:
    """Thin wrapper over the store's GET/POST/DELETE contract.

    The client holds no cache state, so its calls are safe to run from a
    worker thread.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        self._timeout = timeout_s
        self._session = session if session is not None else requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def fetch_range(self, start: int, end: int) -> list[DayRecord]:
        """Return every record with canonical date in ``[start, end]``.

        Raises:
            NetworkError: If the request fails before a response arrives.
            ServerError: On a non-2xx status.
            ResponseFormatError: If the body is not a JSON array of records.
        """
        resp = self._request("GET", params={"from": start, "to": end})
        try:
            payload: Any = resp.json()
        except ValueError as exc:
            raise ResponseFormatError(
                f"invalid JSON from store: {exc}", resp.status_code
            ) from exc
        if not isinstance(payload, list):
            raise ResponseFormatError(
                f"expected a JSON array, got {type(payload).__name__}",
                resp.status_code,
            )
        records = [DayRecord.from_json(item) for item in payload]
        logger.debug("Fetched %d records for [%d, %d]", len(records), start, end)
        return records

    def upsert(self, record: DayRecord) -> None:
        """Create or replace the record for ``record.date``."""
        self._request("POST", json=record.to_json())
        logger.info(
            "Upserted %d: hours=%.2f miles=%.2f",
            record.date,
            record.hours,
            record.miles,
        )

    def delete(self, date: int) -> None:
        """Remove the record for ``date`` if present."""
        self._request("DELETE", params={"date": date})
        logger.info("Deleted %d", date)

    def _request(self, method: str, **kwargs: Any) -> requests.Response:
        try:
            resp = self._session.request(
                method, self._base_url, timeout=self._timeout, **kwargs
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, self._base_url, exc)
            raise NetworkError(f"{method} {self._base_url}: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            logger.warning(
                "%s %s answered HTTP %d", method, self._base_url, resp.status_code
            )
            raise ServerError(
                f"{method} {self._base_url}: HTTP {resp.status_code}",
                resp.status_code,
            )
        return resp
