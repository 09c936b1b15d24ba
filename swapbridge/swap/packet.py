"""Decoding of ASCII-hex SWAP frames received from the radio gateway."""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

logger = logging.getLogger(__name__)

# marker + RSSI + LQI + separator + 7 header bytes (two of them nibbles)
MIN_FRAME_LENGTH = 1 + 2 * 2 + 1 + 7 * 2


class DecodeError(ValueError):
    """Raised when a frame is too short to hold a SWAP header."""


class SwapFunction(IntEnum):
    STATUS = 0
    QUERY = 1
    COMMAND = 2


@dataclass(frozen=True)
class SwapPacket:
    """One decoded SWAP packet.

    ``function_code`` keeps the raw selector byte. Unknown selectors decode
    to ``SwapFunction.STATUS``; check ``function_recognized`` to tell them
    apart from a genuine status packet.
    """
    rssi: int
    lqi: int
    source: int
    destination: int
    hops: int
    security: int
    nonce: int
    function: SwapFunction
    register_address: int
    register_id: int
    payload: bytes = b""
    function_code: int = 0

    @property
    def function_recognized(self) -> bool:
        return self.function_code in {f.value for f in SwapFunction}

    def to_dict(self) -> dict:
        """JSON-friendly view of the packet, payload as hex."""
        return {
            "rssi": self.rssi,
            "lqi": self.lqi,
            "source": self.source,
            "destination": self.destination,
            "hops": self.hops,
            "security": self.security,
            "nonce": self.nonce,
            "function": self.function.name,
            "register_address": self.register_address,
            "register_id": self.register_id,
            "payload": self.payload.hex(),
        }


def hex_digit(char: int) -> int:
    """Value of one ASCII hex digit.

    Characters outside 0-9/A-F/a-f are not rejected; they map to whatever
    the arithmetic gives, truncated to a byte.
    """
    if char >= ord("a"):
        value = char - ord("a") + 10
    elif char >= ord("A"):
        value = char - ord("A") + 10
    else:
        value = char - ord("0")
    return value & 0xFF


def hex_byte(data: bytes, start: int) -> int:
    """Value of the two hex digits at ``data[start:start + 2]``."""
    return (hex_digit(data[start]) * 16 + hex_digit(data[start + 1])) & 0xFF


def swap_function(code: int) -> SwapFunction:
    try:
        return SwapFunction(code)
    except ValueError:
        return SwapFunction.STATUS


def decode_swap_data(frame: Union[bytes, bytearray, str]) -> SwapPacket:
    """Decode one ASCII-hex frame into a SwapPacket.

    Layout by character offset: 0 marker, 1-2 RSSI, 3-4 LQI, 5 separator,
    6-7 source, 8-9 destination, 10 hops, 11 security, 12-13 nonce,
    14-15 function, 16-17 register address, 18-19 register id, then the
    payload two characters per byte. An odd trailing character is dropped.

    Raises:
        DecodeError: If the frame is shorter than MIN_FRAME_LENGTH.
    """
    if isinstance(frame, str):
        frame = frame.encode("ascii", errors="replace")
    data = bytes(frame)

    if len(data) < MIN_FRAME_LENGTH:
        raise DecodeError(
            f"Invalid SWAP data: {len(data)} characters, need {MIN_FRAME_LENGTH}"
        )

    payload_length = (len(data) - MIN_FRAME_LENGTH) // 2
    payload = bytes(
        hex_byte(data, MIN_FRAME_LENGTH + i * 2) for i in range(payload_length)
    )
    function_code = hex_byte(data, 14)

    packet = SwapPacket(
        rssi=hex_byte(data, 1),
        lqi=hex_byte(data, 3),
        source=hex_byte(data, 6),
        destination=hex_byte(data, 8),
        hops=hex_digit(data[10]),
        security=hex_digit(data[11]),
        nonce=hex_byte(data, 12),
        function=swap_function(function_code),
        register_address=hex_byte(data, 16),
        register_id=hex_byte(data, 18),
        payload=payload,
        function_code=function_code,
    )
    if not packet.function_recognized:
        logger.debug(f"Unknown function code 0x{function_code:02x}, treating as STATUS")
    return packet
