"""Transport boundary to live devices."""

from .base import VERBS, NullTransport, Transport
from .proxy_server import DeviceProxyServer

__all__ = ["Transport", "NullTransport", "DeviceProxyServer", "VERBS"]
