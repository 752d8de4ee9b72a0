"""Host inspection helpers used to build a registration payload."""

from __future__ import annotations

import logging
import os
import platform
import shutil
import socket

from vending_registry.domain.types import SystemInfo

LOGGER = logging.getLogger(__name__)

_GIB = 1024 ** 3


def collect_system_info(storage_path: str = "/") -> SystemInfo:
    return SystemInfo(
        os=f"{platform.system() or 'Unknown'} {platform.release()}".strip(),
        version=f"Python {platform.python_version()}",
        architecture=platform.machine() or "unknown",
        memory=_total_memory(),
        storage=_storage_capacity(storage_path),
    )


def local_ip_address(probe_host: str = "10.255.255.255") -> str:
    """Best-effort outbound IPv4 address, falling back to loopback."""

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # UDP connect sends nothing; it only selects the outbound interface.
        sock.connect((probe_host, 1))
        return sock.getsockname()[0]
    except OSError as exc:
        LOGGER.debug("Could not determine outbound address: %s", exc)
        return "127.0.0.1"
    finally:
        sock.close()


def _total_memory() -> str:
    try:
        total = os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (AttributeError, ValueError, OSError):
        return "unknown"
    return f"{round(total / _GIB)}GB"


def _storage_capacity(path: str) -> str:
    try:
        usage = shutil.disk_usage(path)
    except OSError:
        return "unknown"
    return f"{round(usage.total / _GIB)}GB"


__all__ = ["collect_system_info", "local_ip_address"]
