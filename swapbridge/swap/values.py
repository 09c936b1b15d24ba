"""Value definitions: how a register payload maps to a named reading."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class SchemaError(ValueError):
    """Raised when a mote or value definition is malformed."""


class ValueExtractionError(ValueError):
    """Raised when a value cannot be cut out of a register payload."""


class UnsupportedTypeError(ValueExtractionError):
    """Raised for value types that have no byte width (float, strings)."""


class ValueBoundsError(ValueExtractionError):
    """Raised when a value would read past the end of the payload."""


class NotIntegerError(TypeError):
    """Raised when an integer view is requested for a non-integer value."""


class ValueType(str, Enum):
    INT8 = "int8"
    UINT8 = "uint8"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    UINT32 = "uint32"
    FLOAT = "float"
    CSTRING = "cstring"
    PSTRING = "pstring"


WIDTHS: Dict[ValueType, int] = {
    ValueType.INT8: 1,
    ValueType.UINT8: 1,
    ValueType.INT16: 2,
    ValueType.UINT16: 2,
    ValueType.INT32: 4,
    ValueType.UINT32: 4,
}

SIGNED_TYPES = frozenset({ValueType.INT8, ValueType.INT16, ValueType.INT32})


@dataclass(frozen=True)
class SwapValue:
    """A named reading at a fixed position inside one register.

    Integers are big-endian. ``as_integer`` returns the value as encoded
    (no sign extension, also for int8/int16/int32) and is what ``render``
    uses; ``as_signed`` gives the two's-complement reading.
    """
    name: str
    register: int
    position: int
    type: ValueType
    unit: str = ""
    offset: int = 0
    scale: int = 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwapValue":
        """Create a value from one entry of a mote's ``values`` list.

        Keys are matched case-insensitively.

        Raises:
            SchemaError: On missing keys, unknown types or a zero scale.
        """
        if not isinstance(data, dict):
            raise SchemaError(f"Value definition must be a mapping, got {data!r}")
        fields = {str(k).lower(): v for k, v in data.items()}

        try:
            name = str(fields["name"])
            register = int(fields["register"])
            position = int(fields.get("position", 0))
            value_type = ValueType(str(fields["type"]).lower())
            offset = int(fields.get("offset", 0))
            scale = int(fields.get("scale", 1))
        except KeyError as e:
            raise SchemaError(f"Value definition missing {e.args[0]!r}: {data!r}") from e
        except (TypeError, ValueError) as e:
            raise SchemaError(f"Invalid value definition {data!r}: {e}") from e

        if scale == 0:
            raise SchemaError(f"Value {name!r} has a zero scale")
        if not 0 <= register <= 255:
            raise SchemaError(f"Value {name!r} register {register} out of range")
        if position < 0:
            raise SchemaError(f"Value {name!r} has a negative position")

        return cls(
            name=name,
            register=register,
            position=position,
            type=value_type,
            unit=str(fields.get("unit") or ""),
            offset=offset,
            scale=scale,
        )

    @property
    def width(self) -> int:
        """Number of payload bytes this value occupies."""
        try:
            return WIDTHS[self.type]
        except KeyError:
            raise UnsupportedTypeError(
                f"Value {self.name!r} has type {self.type.value}, which has no byte width"
            ) from None

    @property
    def is_integer(self) -> bool:
        return self.type in WIDTHS

    def extract(self, payload: bytes) -> bytes:
        """Cut this value's bytes out of a register payload."""
        end = self.position + self.width
        if end > len(payload):
            raise ValueBoundsError(
                f"Value {self.name!r} needs bytes {self.position}..{end - 1}, "
                f"payload has {len(payload)}"
            )
        return bytes(payload[self.position:end])

    def as_integer(self, raw: bytes) -> int:
        """Big-endian unsigned integer view of the raw bytes."""
        if not self.is_integer:
            raise NotIntegerError("value not an integer")
        return int.from_bytes(raw[:self.width], "big", signed=False)

    def as_signed(self, raw: bytes) -> int:
        """Like as_integer, with sign extension for int8/int16/int32."""
        if not self.is_integer:
            raise NotIntegerError("value not an integer")
        return int.from_bytes(raw[:self.width], "big", signed=self.type in SIGNED_TYPES)

    def render(self, raw: bytes) -> str:
        """Scaled, offset display string; empty for non-integer values."""
        try:
            n = self.as_integer(raw)
        except NotIntegerError:
            return ""
        if self.scale == 1:
            return str(n - self.offset)
        digits = int(math.log10(abs(self.scale)))
        return f"{n / self.scale - self.offset:.{digits}f}"
