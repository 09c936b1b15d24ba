"""MQTT configuration and utilities."""

import json
import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

PLAIN_SCHEME = "tcp"
SECURE_SCHEME = "tcps"

DEFAULT_PORTS = {
    PLAIN_SCHEME: 1883,
    SECURE_SCHEME: 8883,
}


@dataclass
class TLSCredentials:
    """Client certificate, key and CA bundle used for tcps:// brokers."""
    certfile: str = "client.crt"
    keyfile: str = "client.key"
    cafile: str = "ca.crt"


@dataclass
class MQTTConfig:
    """MQTT broker configuration."""
    address: str = "tcp://localhost:1883"
    keepalive: int = 10
    qos: int = 1
    connect_timeout: float = 10.0
    publish_timeout: Optional[float] = None
    queue_size: int = 1000
    credentials: TLSCredentials = field(default_factory=TLSCredentials)

    @classmethod
    def from_dict(cls, data: dict) -> "MQTTConfig":
        """Create config from dictionary."""
        tls_data = data.get("tls", {}) or {}
        return cls(
            address=data.get("address", "tcp://localhost:1883"),
            keepalive=data.get("keepalive", 10),
            qos=data.get("qos", 1),
            connect_timeout=data.get("connect_timeout", 10.0),
            publish_timeout=data.get("publish_timeout"),
            queue_size=data.get("queue_size", 1000),
            credentials=TLSCredentials(
                certfile=tls_data.get("cert", "client.crt"),
                keyfile=tls_data.get("key", "client.key"),
                cafile=tls_data.get("ca", "ca.crt"),
            ),
        )


@dataclass(frozen=True)
class BrokerAddress:
    """A parsed broker URL such as ``tcps://hub.local:8883``."""
    scheme: str
    host: str
    port: int

    @property
    def secure(self) -> bool:
        return self.scheme == SECURE_SCHEME


def parse_address(address: str) -> BrokerAddress:
    """Split a broker URL into scheme, host and port.

    Raises:
        ValueError: If the scheme is not tcp/tcps or the host is missing.
    """
    url = urlparse(address)
    scheme = url.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise ValueError(f"Unsupported broker scheme in {address!r}")
    if not url.hostname:
        raise ValueError(f"Missing broker host in {address!r}")
    return BrokerAddress(
        scheme=scheme,
        host=url.hostname,
        port=url.port or DEFAULT_PORTS[scheme],
    )


def build_tls_context(credentials: TLSCredentials) -> ssl.SSLContext:
    """Load the client certificate pair and CA bundle into an SSL context.

    Hostname checking stays enabled, so the broker certificate must match
    the host of the broker address.
    """
    context = ssl.create_default_context(
        ssl.Purpose.SERVER_AUTH, cafile=credentials.cafile
    )
    context.load_cert_chain(credentials.certfile, credentials.keyfile)
    return context


def encode_payload(payload: Any) -> Optional[bytes]:
    """Turn a publish payload into bytes.

    Bytes go out unchanged, anything else is JSON-encoded. Returns None
    (after logging) when the payload cannot be encoded.
    """
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    try:
        return json.dumps(payload).encode("utf-8")
    except (TypeError, ValueError) as e:
        logger.warning(f"JSON conversion failed: {e} ({payload!r})")
        return None
