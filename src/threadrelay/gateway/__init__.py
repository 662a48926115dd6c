"""Chat gateway adapters."""

from threadrelay.gateway.base import BaseGateway, SentMessage
from threadrelay.gateway.discord import DiscordGatewayConfig, DiscordThreadGateway

__all__ = [
    "BaseGateway",
    "DiscordGatewayConfig",
    "DiscordThreadGateway",
    "SentMessage",
]
