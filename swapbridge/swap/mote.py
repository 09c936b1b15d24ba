"""Motes: remote SWAP nodes and the values they report."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .packet import SwapPacket
from .values import SchemaError, SwapValue, ValueExtractionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapRegister:
    """Declared register layout. Informational only."""
    id: int
    name: str = ""
    size: Optional[int] = None


@dataclass
class SwapMote:
    """A mote, looked up by the register address of incoming packets."""
    address: int
    location: str
    registers: List[SwapRegister] = field(default_factory=list)
    values: List[SwapValue] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwapMote":
        """Create a mote from a parsed schema.

        Expected layout::

            general:
              address: 5
              location: garden
            values:
              - {name: temperature, register: 11, position: 0,
                 type: uint16, unit: C, offset: 50, scale: 10}

        Raises:
            SchemaError: If the schema is incomplete or malformed.
        """
        if not isinstance(data, dict):
            raise SchemaError("Mote schema must be a mapping")

        general = data.get("general") or {}
        if not isinstance(general, dict):
            raise SchemaError("Mote schema 'general' section must be a mapping")
        general = {str(k).lower(): v for k, v in general.items()}
        try:
            address = int(general["address"])
            location = str(general["location"])
        except KeyError as e:
            raise SchemaError(f"Mote schema missing general.{e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise SchemaError(f"Invalid mote address: {e}") from e

        if not 0 <= address <= 255:
            raise SchemaError(f"Mote address {address} out of range")

        registers = []
        for reg in data.get("registers") or []:
            if not isinstance(reg, dict):
                raise SchemaError(f"Register definition must be a mapping, got {reg!r}")
            reg ={str(k).lower(): v for k, v in reg.items()}
            try:
                registers.append(SwapRegister(
                    id=int(reg["id"]),
                    name=str(reg.get("name", "")),
                    size=int(reg["size"]) if reg.get("size") is not None else None,
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise SchemaError(f"Invalid register definition {reg!r}") from e

        values = [SwapValue.from_dict(v) for v in data.get("values") or []]

        return cls(address=address, location=location, registers=registers, values=values)

    def matches(self, packet: SwapPacket) -> bool:
        return packet.register_address == self.address

    def update_values(self, packet: SwapPacket) -> Dict[str, str]:
        """Render every value held in the packet's register.

        Keys are ``"{location}/{name}"``, in declared order. Values that
        cannot be extracted from the payload are logged and left out.
        """
        values: Dict[str, str] = {}
        for value in self.values:
            if value.register != packet.register_id:
                continue
            try:
                raw = value.extract(packet.payload)
            except ValueExtractionError as e:
                logger.warning(f"Mote {self.location}: {e}")
                continue
            values[f"{self.location}/{value.name}"] = value.render(raw)
        return values
