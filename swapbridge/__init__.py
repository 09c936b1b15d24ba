"""Bridge between SWAP wireless motes and an MQTT hub."""

__version__ = "0.1.0"
