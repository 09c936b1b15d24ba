"""Configuration for the SWAP pack.

Settings are layered: dataclass defaults, then an optional YAML file
(``--config`` or SWAP_CONFIG), then the environment the hub starts the
pack with (HUB_PACK, HUB_MQTT, LOG_LEVEL), then the command line.
"""

import argparse
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from swapbridge.shared.config import get_env, get_log_level, load_yaml_config
from swapbridge.shared.mqtt import MQTTConfig, TLSCredentials


@dataclass
class Config:
    """Main configuration."""
    name: str = "swap"
    topic: str = "logger"
    mote_dir: str = "swap_motes"
    retain: bool = True
    topic_prefix: str = "SWAP"
    publish: MQTTConfig = field(default_factory=MQTTConfig)
    subscribe: MQTTConfig = field(default_factory=MQTTConfig)
    log_level: str = "INFO"
    log_timestamps: bool = True

    @property
    def shared_broker(self) -> bool:
        """True when publishing and subscribing use the same broker."""
        return self.publish.address == self.subscribe.address

    @property
    def uses_tls(self) -> bool:
        return any(
            c.address.lower().startswith("tcps")
            for c in (self.publish, self.subscribe)
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        mqtt_data = data.get("mqtt", {}) or {}
        publish = MQTTConfig.from_dict(_broker_section(mqtt_data, data.get("publish")))
        subscribe = MQTTConfig.from_dict(_broker_section(mqtt_data, data.get("subscribe")))
        return cls(
            name=data.get("name", "swap"),
            topic=data.get("topic", "logger"),
            mote_dir=data.get("motes", "swap_motes"),
            retain=data.get("retain", True),
            topic_prefix=data.get("topic_prefix", "SWAP"),
            publish=publish,
            subscribe=subscribe,
            log_level=get_log_level(data),
            log_timestamps=data.get("log_timestamps", True),
        )


def _broker_section(shared: dict, section: Optional[dict]) -> dict:
    """Overlay a publish/subscribe section on the shared mqtt section, tls included."""
    section = section or {}
    merged = {**shared, **section}
    tls = {**(shared.get("tls") or {}), **(section.get("tls") or {})}
    if tls:
        merged["tls"] = tls
    return merged


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="swapbridge-pack",
        description="Republish SWAP mote readings from the gateway as hub topics",
    )
    p.add_argument("--config", help="YAML configuration file")
    p.add_argument("--sub", help="broker for subscription")
    p.add_argument("--pub", help="broker for publishing")
    p.add_argument("--topic", help="topic for subscription (default: logger)")
    p.add_argument("--motes", help="folder with mote definitions (default: swap_motes)")
    p.add_argument("--cert", help="client certificate file for TLS connections")
    p.add_argument("--key", help="client key file for TLS connections")
    p.add_argument("--ca", help="CA bundle for TLS connections")
    p.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    return p


def load_config(argv: Optional[List[str]] = None) -> Config:
    """Build the pack configuration from file, environment and command line.

    Args:
        argv: Command line arguments, defaults to sys.argv[1:].

    Returns:
        Config object with loaded settings.
    """
    args = build_parser().parse_args(argv)
    load_dotenv()

    config_path = args.config or get_env("SWAP_CONFIG")
    if config_path:
        config = Config.from_dict(load_yaml_config(config_path, load_env=False))
    else:
        config = Config()

    # set by the hub when it starts this pack; the hub timestamps our output
    hub_pack = get_env("HUB_PACK")
    if hub_pack:
        config.name = hub_pack
        config.log_timestamps = False
    hub_broker = get_env("HUB_MQTT")
    if hub_broker:
        config.publish.address = hub_broker
        config.subscribe.address = hub_broker
    config.log_level = get_env("LOG_LEVEL", config.log_level).upper()

    if args.sub:
        config.subscribe.address = args.sub
    if args.pub:
        config.publish.address = args.pub
    if args.topic:
        config.topic = args.topic
    if args.motes:
        config.mote_dir = args.motes
    if args.log_level:
        config.log_level = args.log_level.upper()

    for mqtt_config in (config.publish, config.subscribe):
        creds = mqtt_config.credentials
        mqtt_config.credentials = TLSCredentials(
            certfile=args.cert or creds.certfile,
            keyfile=args.key or creds.keyfile,
            cafile=args.ca or creds.cafile,
        )

    return config


def describe(config: Config) -> List[str]:
    """Startup summary lines for the log."""
    lines = [
        "SWAP pack starting...",
        f"    Listening for topic {config.topic}, mote directory at {config.mote_dir}",
        f"    Subscribing from {config.subscribe.address}, Publishing to {config.publish.address}",
    ]
    if config.uses_tls:
        creds = config.publish.credentials
        lines.append(
            f"    Using TLS with certificate {creds.certfile} and key {creds.keyfile}"
        )
    return lines

