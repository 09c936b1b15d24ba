"""Reading mote definitions from a directory of YAML files."""

import logging
from pathlib import Path
from typing import List, Union

import yaml

from .mote import SwapMote
from .values import SchemaError

logger = logging.getLogger(__name__)


def read_mote_file(path: Union[str, Path]) -> SwapMote:
    """Parse one mote definition file.

    Raises:
        SchemaError: If the file cannot be read or describes an invalid mote.
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise SchemaError(f"Failed to parse mote config {path}: {e}") from e

    try:
        return SwapMote.from_dict(data)
    except SchemaError as e:
        raise SchemaError(f"{path}: {e}") from e


def read_motes(mote_dir: Union[str, Path]) -> List[SwapMote]:
    """Load every mote definition in a directory, sorted by file name."""
    mote_dir = Path(mote_dir)
    if not mote_dir.is_dir():
        logger.warning(f"Mote directory {mote_dir} not found, no motes loaded")
        return []

    motes = []
    for path in sorted(p for p in mote_dir.iterdir() if p.is_file()):
        logger.info(f"Reading from {path}")
        mote = read_mote_file(path)
        logger.info(f"Mote {mote.address}: Location {mote.location}")
        for value in mote.values:
            logger.info(f"    Value: {value.name}, type: {value.type.value}")
        motes.append(mote)
    return motes
