"""Routing of decoded SWAP packets to hub topics."""

import json
import logging
import time
from typing import Callable, Dict, List, Union

from swapbridge.hub.client import HubClient
from swapbridge.swap.mote import SwapMote
from swapbridge.swap.packet import DecodeError, SwapPacket, decode_swap_data

logger = logging.getLogger(__name__)


class Router:
    """Publishes the readings of known motes.

    For each packet from a known mote the rendered values go to
    ``{prefix}/{location}/{name}``, followed by ``Timestamp``, ``CC_RSSI``
    and ``LQI`` under the same location. Payloads are plain text.
    """

    def __init__(
        self,
        motes: List[SwapMote],
        hub: HubClient,
        retain: bool = True,
        prefix: str = "SWAP",
        clock: Callable[[], float] = time.time,
    ):
        self.motes = list(motes)
        self.hub = hub
        self.retain = retain
        self.prefix = prefix
        self._clock = clock

    def handle_frame(self, frame: Union[bytes, str]) -> Dict[str, str]:
        """Decode one gateway frame and publish its readings."""
        try:
            packet = decode_swap_data(frame)
        except DecodeError as e:
            logger.warning(f"Dropping frame {frame!r}: {e}")
            return {}
        logger.debug(json.dumps(packet.to_dict()))
        return self.handle_packet(packet)

    def handle_packet(self, packet: SwapPacket) -> Dict[str, str]:
        """Publish the readings a packet carries for every matching mote.

        Returns:
            The published topics and their values.
        """
        published: Dict[str, str] = {}
        for mote in self.motes:
            if not mote.matches(packet):
                continue

            readings = {
                f"{self.prefix}/{key}": value
                for key, value in mote.update_values(packet).items()
            }
            base = f"{self.prefix}/{mote.location}"
            readings[f"{base}/Timestamp"] = str(int(self._clock()))
            readings[f"{base}/CC_RSSI"] = str(packet.rssi)
            readings[f"{base}/LQI"] = str(packet.lqi)

            for topic, value in readings.items():
                logger.info(f"{topic}: {value}")
                self.hub.publish(topic, value.encode("utf-8"), self.retain)
            published.update(readings)

        if not published:
            logger.debug(f"No mote at register address {packet.register_address}")
        return published
