"""Device info shared by all entities of a channel."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.entity import DeviceInfo

from ..const import DOMAIN

if TYPE_CHECKING:
    from ..core.config import ChannelConfig


def channel_device_info(entry_id: str, config: ChannelConfig) -> DeviceInfo:
    """One device per channel."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry_id)},
        name=config.name,
        manufacturer="Utility Cost Monitor",
        model=config.channel_type.title(),
    )
