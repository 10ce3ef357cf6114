import asyncio
import socket

import pytest

from pantry.config import Settings
from pantry.services.network import HostReachability, StaticNetworkStatus, create_network_status


def _unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestHostReachability:
    @pytest.mark.asyncio
    async def test_listening_host_is_online(self):
        async def handle(reader, writer):
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            assert await HostReachability("127.0.0.1", port=port, timeout=2.0).is_online() is True
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_closed_port_is_offline(self):
        assert await HostReachability("127.0.0.1", port=_unused_port(), timeout=2.0).is_online() is False


class TestNetworkStatusFactory:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode, expected", [("online", True), ("offline", False)])
    async def test_static_modes(self, mode, expected):
        status = create_network_status(Settings(NETWORK_MODE=mode))

        assert isinstance(status, StaticNetworkStatus)
        assert await status.is_online() is expected

    def test_probe_mode(self):
        status = create_network_status(Settings(
            NETWORK_MODE="probe",
            NETWORK_PROBE_HOST="off.test",
            NETWORK_PROBE_PORT=8443,
            NETWORK_PROBE_TIMEOUT=0.5,
        ))

        assert isinstance(status, HostReachability)
        assert (status.host, status.port, status.timeout) == ("off.test", 8443, 0.5)

    def test_unknown_mode(self):
        config = Settings(NETWORK_MODE="online")
        config.network_mode = "satellite"

        with pytest.raises(ValueError, match="Unknown network mode"):
            create_network_status(config)
