"""Vehicle profile service client (profile deletion and VIN decoding)."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from pyassoc._transport import RestTransport
from pyassoc.config import AssocConfig
from pyassoc.exceptions import AssocTransportError
from pyassoc.models.messages import VinDecodeResult

_logger = logging.getLogger(__name__)


class VehicleProfileClient:
    """Talks to the vehicle profile service.

    :meth:`delete_profile` reports the outcome as a boolean and
    :meth:`decode_vin` returns ``None`` when decoding fails; neither raises
    for peer failures because both back best-effort parts of a lifecycle
    operation that has already committed.
    """

    def __init__(self, config: AssocConfig, transport: RestTransport) -> None:
        self._config = config
        self._transport = transport

    def _base(self) -> str:
        return f"{self._config.vehicle_profile_base_url.rstrip('/')}/{self._config.vehicle_profile_version}"

    def delete_url(self, device_id: str) -> str:
        return f"{self._base()}{self._config.vehicle_profile_terminate_path}?clientId={device_id}"

    def decode_url(self, vin: str) -> str:
        return f"{self._base()}/vins/{vin}/decode?type=CODE_VALUE"

    async def delete_profile(self, device_id: str) -> bool:
        """Delete the vehicle profile derived from *device_id* (harman id).

        Succeeds only when the peer answers with ``data: true``.
        """
        url = self.delete_url(device_id)
        _logger.debug("Vehicle profile DELETE url: %s", url)
        try:
            body = await self._transport.delete_json(url)
        except AssocTransportError as exc:
            _logger.warning("Vehicle profile deletion failed for %s: %s", device_id, exc)
            return False
        deleted = isinstance(body, dict) and body.get("data") is True
        if deleted:
            _logger.info("Vehicle profile deleted for %s", device_id)
        else:
            _logger.warning("Vehicle profile deletion rejected for %s: %s", device_id, body)
        return deleted

    async def decode_vin(self, vin: str) -> VinDecodeResult | None:
        """Decode *vin* into model code and name; ``None`` when decoding fails."""
        url = self.decode_url(vin)
        _logger.debug("Decode VIN endpoint: %s", url)
        try:
            body = await self._transport.post_json(url, None)
            return _parse_decode_response(body)
        except (AssocTransportError, ValidationError, ValueError) as exc:
            _logger.warning("VIN decoding failed for %s, continuing without model name: %s", vin, exc)
            return None


def _parse_decode_response(body: Any) -> VinDecodeResult:
    # The decoded payload is a JSON document embedded as a string in ``data``.
    data = body.get("data") if isinstance(body, dict) else None
    if isinstance(data, str):
        data = json.loads(data)
    if not isinstance(data, dict):
        raise ValueError(f"unexpected VIN decode response: {body!r}")
    return VinDecodeResult.model_validate(data)
