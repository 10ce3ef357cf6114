"""Network reachability signals used before calling the product API"""
import asyncio
import logging
from abc import ABC, abstractmethod

from pantry.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class NetworkStatus(ABC):
    """Answers whether the product API is worth calling right now"""

    @abstractmethod
    async def is_online(self) -> bool:
        pass


class StaticNetworkStatus(NetworkStatus):
    """Fixed answer, for deployments that know their connectivity up front"""

    def __init__(self, online: bool):
        self.online = online

    async def is_online(self) -> bool:
        return self.online


class HostReachability(NetworkStatus):
    """Probe a TCP port on the API host; unreachable or slow means offline"""

    def __init__(self, host: str, port: int = 443, timeout: float = 3.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def is_online(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.info(f"{self.host}:{self.port} unreachable: {e!r}")
            return False
        writer.close()
        await writer.wait_closed()
        return True


def create_network_status(config: Settings = default_settings) -> NetworkStatus:
    """Build the reachability signal selected by NETWORK_MODE"""
    if config.network_mode == "online":
        return StaticNetworkStatus(True)
    if config.network_mode == "offline":
        return StaticNetworkStatus(False)
    if config.network_mode == "probe":
        return HostReachability(
            config.network_probe_host,
            port=config.network_probe_port,
            timeout=config.network_probe_timeout,
        )
    raise ValueError(f"Unknown network mode: {config.network_mode!r} (probe / online / offline)")
