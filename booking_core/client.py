"""Async client for the remote appointments backend.

Implements the SlotStore seam over the backend's /appointments routes so the
repository can run against production data. Token issuance is out of scope;
a static bearer token is read from configuration.
"""
from __future__ import annotations

from datetime import datetime

import httpx

from . import config
from .errors import ConflictError, NotFoundError
from .models import Slot

_WIRE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _conflict_detail(resp: httpx.Response) -> str:
    try:
        return resp.json().get("message") or resp.text
    except ValueError:
        return resp.text


class AppointmentApiStore:
    def __init__(self, base_url: str | None = None, token: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or config.BOOKING_API_BASE_URL).rstrip("/")
        self.token = config.BOOKING_API_TOKEN if token is None else token
        self.timeout = timeout or config.BOOKING_API_TIMEOUT

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(http2=True, timeout=self.timeout, headers=self._headers())

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.status_code == 409:
            raise ConflictError(_conflict_detail(resp))
        resp.raise_for_status()

    async def add(self, specialist_id: int, start_time: datetime, end_time: datetime) -> Slot:
        body = {
            "specialistId": specialist_id,
            "startTime": start_time.strftime(_WIRE_FORMAT),
            "endTime": end_time.strftime(_WIRE_FORMAT),
        }
        async with self._client() as client:
            resp = await client.post(f"{self.base_url}/appointments", json=body)
            self._raise_for_status(resp)
            return Slot.model_validate(resp.json())

    async def get(self, slot_id: int) -> Slot | None:
        """Return the slot or None when the backend answers 404."""
        async with self._client() as client:
            resp = await client.get(f"{self.base_url}/appointments/{slot_id}")
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp)
        return Slot.model_validate(resp.json())

    async def _list(self, params: dict) -> list[Slot]:
        async with self._client() as client:
            resp = await client.get(f"{self.base_url}/appointments", params=params)
            self._raise_for_status(resp)
            payload = resp.json()
        return [Slot.model_validate(item) for item in payload]

    async def list_for_specialist(self, specialist_id: int) -> list[Slot]:
        return await self._list({"specialistId": specialist_id})

    async def list_for_client(self, client_id: int) -> list[Slot]:
        return await self._list({"clientId": client_id})

    async def save(self, slot: Slot) -> Slot:
        body = slot.model_dump(by_alias=True, mode="json", exclude={"id"})
        body["startTime"] = slot.start_time.strftime(_WIRE_FORMAT)
        body["endTime"] = slot.end_time.strftime(_WIRE_FORMAT)
        async with self._client() as client:
            resp = await client.put(f"{self.base_url}/appointments/{slot.id}", json=body)
        if resp.status_code == 404:
            raise NotFoundError(slot.id)
        self._raise_for_status(resp)
        return Slot.model_validate(resp.json())

    async def delete(self, slot_id: int) -> None:
        async with self._client() as client:
            resp = await client.delete(f"{self.base_url}/appointments/{slot_id}")
        if resp.status_code == 404:
            raise NotFoundError(slot_id)
        self._raise_for_status(resp)
