"""Inbound hub events."""

import dataclasses
import json
import logging
from dataclasses import dataclass
from typing import Any, get_type_hints

from pydantic import PydanticUserError, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """One message received on a subscribed topic."""
    topic: str
    payload: bytes
    retained: bool = False

    def decode(self, target: Any) -> bool:
        """Decode the JSON payload into ``target``.

        ``target`` is either a dict, which gets updated with the decoded
        object, or a mutable dataclass instance. Dataclass fields are matched
        to keys case-insensitively and coerced loosely: numeric strings
        become numbers, "true"/"false" become booleans and numbers assigned
        to string fields become strings.

        Returns:
            True on success. Failures are logged and give False.
        """
        try:
            data = json.loads(self.payload)
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"JSON decode error: {e} ({self.payload!r})")
            return False

        if isinstance(target, dict):
            if not isinstance(data, dict):
                logger.warning(f"Decode error: expected an object on {self.topic}, got {data!r}")
                return False
            target.update(data)
            return True

        if not dataclasses.is_dataclass(target) or isinstance(target, type):
            logger.warning(f"Decode error: cannot decode into {type(target).__name__}")
            return False
        if not isinstance(data, dict):
            logger.warning(f"Decode error: expected an object on {self.topic}, got {data!r}")
            return False

        return _weak_decode(data, target, self.topic)


def _weak_decode(data: dict, target: Any, topic: str) -> bool:
    cls = type(target)
    try:
        hints = get_type_hints(cls)
        adapter = TypeAdapter(cls)
    except (NameError, TypeError, PydanticUserError) as e:
        logger.warning(f"Decode error: cannot decode into {cls.__name__}: {e}")
        return False
    names = {f.name.lower(): f.name for f in dataclasses.fields(target) if f.init}

    merged = {name: getattr(target, name) for name in names.values()}
    for key, value in data.items():
        name = names.get(str(key).lower())
        if name is None:
            continue
        if hints.get(name) is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        merged[name] = value

    try:
        decoded = adapter.validate_python(merged)
    except ValidationError as e:
        logger.warning(f"Decode error on {topic}: {e}")
        return False

    try:
        for name in names.values():
            setattr(target, name, getattr(decoded, name))
    except dataclasses.FrozenInstanceError:
        logger.warning(f"Decode error: {cls.__name__} is frozen")
        return False
    return True
