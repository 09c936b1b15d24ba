"""Shared fixtures for swapbridge tests."""

import pytest

from swapbridge.swap.mote import SwapMote


def build_frame(
    rssi=0, lqi=0, source=0, destination=0, hops=0, security=0,
    nonce=0, function=0, address=0, register=0, payload=b"",
) -> str:
    """Assemble a gateway frame from header fields."""
    return (
        f"({rssi:02X}{lqi:02X})"
        f"{source:02X}{destination:02X}{hops:X}{security:X}{nonce:02X}"
        f"{function:02X}{address:02X}{register:02X}{payload.hex().upper()}"
    )


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def garden_schema():
    return {
        "general": {"address": 5, "location": "garden"},
        "registers": [{"id": 11, "name": "climate", "size": 4}],
        "values": [
            {"name": "Temperature", "register": 11, "position": 0, "type": "uint16",
             "unit": "C", "offset": 50, "scale": 10},
            {"name": "Humidity", "register": 11, "position": 2, "type": "uint16",
             "unit": "%", "offset": 0, "scale": 10},
            {"name": "Voltage", "register": 12, "position": 0, "type": "uint16",
             "unit": "mV", "offset": 0, "scale": 1},
        ],
    }


@pytest.fixture
def garden_mote(garden_schema) -> SwapMote:
    return SwapMote.from_dict(garden_schema)
