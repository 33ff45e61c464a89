"""Device authentication service client (deactivation endpoints)."""

from __future__ import annotations

import logging

from pyassoc._constants import HEADER_HCP_USER, HEADER_USER_ID
from pyassoc._transport import RestTransport
from pyassoc.config import AssocConfig
from pyassoc.models.messages import DeactivationRequestV1, DeactivationRequestV2

_logger = logging.getLogger(__name__)


class DeviceAuthClient:
    """Deactivates device authentication after a disassociation.

    Both calls raise :class:`~pyassoc.exceptions.AssocTransportError` on any
    non-2xx status or transport failure.
    """

    def __init__(self, config: AssocConfig, transport: RestTransport) -> None:
        self._config = config
        self._transport = transport

    async def deactivate(self, *, serial_number: str, user_id: str) -> None:
        """v1: deactivate by serial number on behalf of *user_id*."""
        url = self._config.auth_deactivate_url
        body = DeactivationRequestV1(serial_number=serial_number)
        await self._transport.post_json(
            url,
            body.model_dump(by_alias=True),
            headers={HEADER_HCP_USER: user_id},
        )
        _logger.info("Device auth deactivated serial_number=%s", serial_number)

    async def deactivate_v2(self, *, factory_id: int, user_id: str) -> None:
        """v2: deactivate by factory record id on behalf of *user_id*."""
        url = self._config.auth_deactivate_v2_url
        body = DeactivationRequestV2(factory_id=factory_id)
        _logger.debug("v2 deactivate url: %s", url)
        await self._transport.post_json(
            url,
            body.model_dump(by_alias=True),
            headers={HEADER_USER_ID: user_id},
        )
        _logger.info("Device auth deactivated (v2) factory_id=%s", factory_id)
