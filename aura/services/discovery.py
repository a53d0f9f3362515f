"""
Subnet scan for servers answering the status endpoint
"""
import asyncio
import logging
import socket
from typing import List, Optional

from aura.database import Settings

logger = logging.getLogger(__name__)

def get_local_ip() -> str:
    """Address of the interface used for outbound traffic (no packets are sent)"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("10.255.255.255", 1))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()

def subnet_prefix(ip: str) -> str:
    """Network prefix of an IPv4 address: 192.168.1.37 -> 192.168.1"""
    return ip.rsplit(".", 1)[0]

class SubnetScanner:
    def __init__(self, repository, provider, settings: Settings):
        self.repository = repository
        self.provider = provider
        self.timeout = settings.discovery_timeout_seconds
        self.batch_size = max(1, settings.discovery_batch_size)
        self.subnet = settings.discovery_subnet

    def candidates(self, prefix: Optional[str] = None) -> List[str]:
        prefix = prefix or self.subnet or subnet_prefix(get_local_ip())
        return [f"{prefix}.{host}" for host in range(1, 255)]

    async def _probe(self, address: str) -> Optional[str]:
        try:
            status = await self.provider.get_status(address, timeout=self.timeout)
        except Exception as e:
            logger.debug(f"Probe of {address} failed: {e!r}")
            return None
        if status is None:
            return None
        logger.info(f"Found server at {address}")
        self.repository.upsert_server(
            status.name,
            address,
            "online",
            firmware_version=status.firmware_version,
            uptime_seconds=status.uptime_seconds,
            seen=True,
        )
        return address

    async def scan(self, prefix: Optional[str] = None) -> List[str]:
        """Probe hosts 1-254 in fixed-size batches; returns the addresses that answered"""
        addresses = self.candidates(prefix)
        logger.info(f"Scanning subnet: {subnet_prefix(addresses[0])}.x")

        found: List[str] = []
        for start in range(0, len(addresses), self.batch_size):
            batch = addresses[start:start + self.batch_size]
            results = await asyncio.gather(*(self._probe(a) for a in batch))
            found.extend(a for a in results if a)

        logger.info(f"Subnet scan finished: {len(found)} server(s) found")
        return found
