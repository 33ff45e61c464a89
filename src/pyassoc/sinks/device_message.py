"""Device message service client (config push to a device)."""

from __future__ import annotations

import logging
from typing import Any

from pyassoc._constants import CONFIG_COMMAND_PUT, EVENT_VERSION
from pyassoc._transport import RestTransport
from pyassoc.config import AssocConfig
from pyassoc.models.messages import ConfigMessage

_logger = logging.getLogger(__name__)


class DeviceMessageClient:
    """Publishes config messages to ``<base>/<version>/devices/<deviceId>/config``."""

    def __init__(self, config: AssocConfig, transport: RestTransport) -> None:
        self._config = config
        self._transport = transport

    def config_url(self, device_id: str) -> str:
        base = self._config.device_message_base_url.rstrip("/")
        return f"{base}/{self._config.device_message_version}/devices/{device_id}/config"

    async def publish(
        self,
        domain: str,
        device_id: str,
        *,
        command: str = CONFIG_COMMAND_PUT,
        data: Any = None,
        version: str = EVENT_VERSION,
    ) -> None:
        message = ConfigMessage(command=command, data=data, domain=domain, version=version)
        _logger.info("Config push domain=%s device_id=%s", domain, device_id)
        await self._transport.post_json(self.config_url(device_id), message.model_dump(by_alias=True))
