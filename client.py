"""Booking API client: the engine's endpoint over HTTP."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx
from fastapi import status

from config import settings
from errors import ConflictError, NotFoundError, TransportError, ValidationError
from models import BookingRead

logger = logging.getLogger(__name__)


def _detail(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text[:500] if r.text else f"HTTP {r.status_code}"
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return f"HTTP {r.status_code}"


class HttpBookingEndpoint:
    """list_week / create / delete against the booking API."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, base_url: str | None = None, timeout: float | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpBookingEndpoint":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            r = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        if r.is_success:
            return r
        detail = _detail(r)
        if r.status_code == status.HTTP_409_CONFLICT:
            raise ConflictError(detail)
        if r.status_code == status.HTTP_404_NOT_FOUND:
            raise NotFoundError(detail)
        if r.status_code in (status.HTTP_400_BAD_REQUEST, 422):
            raise ValidationError(detail)
        logger.warning("%s %s returned %s: %s", method, path, r.status_code, detail)
        raise TransportError(f"Booking API error: {r.status_code} {detail}")

    async def list_week(self, week_start: date) -> list[BookingRead]:
        r = await self._request("GET", "/bookings", params={"week_start": week_start.isoformat()})
        try:
            return [BookingRead.model_validate(row) for row in r.json()]
        except ValueError as e:
            raise TransportError(f"Malformed booking list: {e}") from e

    async def create(self, day: date, slot_index: int, owner: str) -> BookingRead:
        payload = {"booking_date": day.isoformat(), "slot_index": slot_index, "owner": owner}
        r = await self._request("POST", "/bookings", json=payload)
        try:
            return BookingRead.model_validate(r.json())
        except ValueError as e:
            raise TransportError(f"Malformed booking: {e}") from e

    async def delete(self, booking_id: str) -> None:
        await self._request("DELETE", f"/bookings/{booking_id}")
