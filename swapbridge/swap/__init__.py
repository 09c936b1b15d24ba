"""SWAP radio protocol: frame decoding and mote value definitions."""

from .packet import DecodeError, SwapFunction, SwapPacket, decode_swap_data
from .values import (
    NotIntegerError,
    SchemaError,
    SwapValue,
    UnsupportedTypeError,
    ValueBoundsError,
    ValueExtractionError,
    ValueType,
)
from .mote import SwapMote, SwapRegister
from .loader import read_motes

__all__ = [
    "DecodeError",
    "SwapFunction",
    "SwapPacket",
    "decode_swap_data",
    "NotIntegerError",
    "SchemaError",
    "SwapValue",
    "UnsupportedTypeError",
    "ValueBoundsError",
    "ValueExtractionError",
    "ValueType",
    "SwapMote",
    "SwapRegister",
    "read_motes",
]
