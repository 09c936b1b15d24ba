"""Tests for the hub connection, against a mocked paho client."""

import json
import re
from unittest.mock import MagicMock, patch

import paho.mqtt.client as mqtt
import pytest

from swapbridge.hub.client import (
    HubClient,
    HubConnectionError,
    connect_to_hub,
    make_client_id,
)
from swapbridge.shared.mqtt import MQTTConfig, TLSCredentials


@pytest.fixture
def paho_client():
    """Mocked paho client that accepts the connection when the loop starts."""
    client = MagicMock()
    client.subscribe.return_value = (mqtt.MQTT_ERR_SUCCESS, 1)
    client.unsubscribe.return_value = (mqtt.MQTT_ERR_SUCCESS, 2)
    with patch("swapbridge.hub.client.mqtt.Client", return_value=client) as factory:
        client.factory = factory
        yield client


def accept_on_loop_start(hub: HubClient, client: MagicMock, reason_code=0):
    client.loop_start.side_effect = lambda: hub._on_connect(client, None, {}, reason_code, None)


@pytest.fixture
def hub(paho_client):
    hub = HubClient(MQTTConfig(address="tcp://broker.local:1883", connect_timeout=1.0))
    accept_on_loop_start(hub, paho_client)
    return hub


def published(client: MagicMock):
    return [(c.args[0], c.args[1], c.kwargs["retain"]) for c in client.publish.call_args_list]


class TestClientId:

    def test_suffix_from_clock(self):
        with patch("swapbridge.hub.client.time.time_ns", return_value=1_700_000_000_123_456_789):
            assert make_client_id("swap") == "swap/456789"

    def test_suffix_is_zero_padded(self):
        with patch("swapbridge.hub.client.time.time_ns", return_value=5_000_042):
            assert make_client_id("swap") == "swap/000042"


class TestConnect:

    def test_plain_connection(self, hub, paho_client):
        hub.connect("swap")

        assert re.fullmatch(r"swap/\d{6}", hub.client_id)
        assert paho_client.factory.call_args.kwargs["client_id"] == hub.client_id
        paho_client.connect.assert_called_once_with("broker.local", 1883, keepalive=10)
        paho_client.tls_set_context.assert_not_called()
        assert hub.is_connected

    def test_last_will_on_presence_topic(self, hub, paho_client):
        hub.connect("swap", retain=True)

        paho_client.will_set.assert_called_once_with(
            f"jet/{hub.client_id}", None, qos=1, retain=True
        )

    def test_announces_presence(self, hub, paho_client):
        presence = hub.connect("swap", retain=False)
        presence.flush()

        assert presence is hub.presence
        assert published(paho_client) == [(f"jet/{hub.client_id}", b"0", False)]

    def test_presence_notifier_publishes_status(self, hub, paho_client):
        presence = hub.connect("swap")
        presence.send({"state": "busy"})
        presence.flush()

        topic, payload, retain = published(paho_client)[-1]
        assert topic == hub.presence_topic
        assert json.loads(payload) == {"state": "busy"}
        assert retain is True

    def test_secure_connection(self, paho_client):
        creds = TLSCredentials(certfile="c.crt", keyfile="c.key", cafile="ca.crt")
        hub = HubClient(MQTTConfig(address="tcps://hub.example.com", credentials=creds))
        accept_on_loop_start(hub, paho_client)
        context = object()

        with patch("swapbridge.hub.client.build_tls_context", return_value=context) as build:
            hub.connect("swap")

        build.assert_called_once_with(creds)
        paho_client.tls_set_context.assert_called_once_with(context)
        paho_client.connect.assert_called_once_with("hub.example.com", 8883, keepalive=10)

    def test_missing_tls_material(self, paho_client):
        hub = HubClient(MQTTConfig(address="tcps://hub.example.com"))
        with patch("swapbridge.hub.client.build_tls_context", side_effect=FileNotFoundError("c.crt")):
            with pytest.raises(HubConnectionError, match="TLS"):
                hub.connect("swap")
        paho_client.connect.assert_not_called()

    def test_malformed_address(self, paho_client):
        with pytest.raises(HubConnectionError, match="Malformed URL"):
            HubClient(MQTTConfig(address="http://broker:80")).connect("swap")

    def test_socket_error(self, hub, paho_client):
        paho_client.connect.side_effect = ConnectionRefusedError("refused")
        with pytest.raises(HubConnectionError):
            hub.connect("swap")
        assert hub.client is None

    def test_refused_by_broker(self, hub, paho_client):
        accept_on_loop_start(hub, paho_client, reason_code=5)
        with pytest.raises(HubConnectionError, match="refused"):
            hub.connect("swap")
        paho_client.loop_stop.assert_called_once()
        assert not hub.is_connected

    def test_timeout(self, paho_client):
        hub = HubClient(MQTTConfig(connect_timeout=0.01))
        with pytest.raises(HubConnectionError, match="Timeout"):
            hub.connect("swap")
        paho_client.loop_stop.assert_called_once()

    def test_connect_to_hub(self, paho_client):
        paho_client.loop_start.side_effect = None
        with patch.object(HubClient, "connect") as connect:
            hub = connect_to_hub("swap", "tcp://other:1884", retain=False, keepalive=30)

        connect.assert_called_once_with("swap", retain=False)
        assert hub.config.address == "tcp://other:1884"
        assert hub.config.keepalive == 30


class TestPublish:

    def test_bytes_are_sent_unchanged(self, hub, paho_client):
        hub.connect("swap")
        assert hub.publish("SWAP/garden/Temperature", b"21.5", retain=True) is True
        paho_client.publish.assert_called_with("SWAP/garden/Temperature", b"21.5", qos=1, retain=True)

    def test_other_payloads_are_json(self, hub, paho_client):
        hub.connect("swap")
        hub.publish("status", {"ok": True, "n": 3})
        assert json.loads(paho_client.publish.call_args.args[1]) == {"ok": True, "n": 3}

    def test_waits_for_acknowledgment(self, hub, paho_client):
        hub.config.publish_timeout = 2.5
        hub.connect("swap")
        hub.presence.flush()
        hub.publish("status", b"x")
        paho_client.publish.return_value.wait_for_publish.assert_called_with(timeout=2.5)

    def test_unserialisable_payload_is_skipped(self, hub, paho_client):
        hub.connect("swap")
        hub.presence.flush()
        paho_client.publish.reset_mock()

        assert hub.publish("status", object()) is False
        paho_client.publish.assert_not_called()

    def test_failure_is_not_raised(self, hub, paho_client):
        hub.connect("swap")
        hub.presence.flush()
        paho_client.publish.return_value.wait_for_publish.side_effect = RuntimeError("no connection")

        assert hub.publish("status", b"x") is False

    def test_unacknowledged(self, hub, paho_client):
        hub.connect("swap")
        hub.presence.flush()
        paho_client.publish.return_value.is_published.return_value = False

        assert hub.publish("status", b"x") is False

    def test_before_connect(self):
        assert HubClient(MQTTConfig()).publish("status", b"x") is False


class TestSubscribe:

    def message(self, topic, payload, retain=False):
        msg = MagicMock()
        msg.topic = topic
        msg.payload = payload
        msg.retain = retain
        return msg

    def test_messages_become_events(self, hub, paho_client):
        hub.connect("swap")
        watcher = hub.subscribe("logger/#")

        paho_client.subscribe.assert_called_once_with("logger/#", qos=0)
        pattern, handler = paho_client.message_callback_add.call_args.args
        assert pattern == "logger/#"

        handler(paho_client, None, self.message("logger/gw1", b"(C4AF)...", retain=True))
        event = watcher.get(timeout=1.0)

        assert event.topic == "logger/gw1"
        assert event.payload == b"(C4AF)..."
        assert event.retained is True

    def test_watchers_share_one_subscription(self, hub, paho_client):
        hub.connect("swap")
        first = hub.subscribe("logger")
        second = hub.subscribe("logger")

        paho_client.subscribe.assert_called_once()
        _, handler = paho_client.message_callback_add.call_args.args
        handler(paho_client, None, self.message("logger", b"frame"))

        assert first.get(timeout=1.0).payload == b"frame"
        assert second.get(timeout=1.0).payload == b"frame"

    def test_resubscribes_after_reconnect(self, hub, paho_client):
        hub.connect("swap")
        hub.subscribe("logger", qos=1)
        paho_client.subscribe.reset_mock()

        hub._on_connect(paho_client, None, {}, 0, None)

        paho_client.subscribe.assert_called_once_with("logger", qos=1)

    def test_failed_subscription_is_logged(self, hub, paho_client):
        hub.connect("swap")
        paho_client.subscribe.return_value = (mqtt.MQTT_ERR_NO_CONN, None)

        watcher = hub.subscribe("logger")
        assert not watcher.closed

    def test_close_unsubscribes(self, hub, paho_client):
        hub.connect("swap")
        watcher = hub.subscribe("logger")
        watcher.close()

        paho_client.message_callback_remove.assert_called_once_with("logger")
        paho_client.unsubscribe.assert_called_once_with("logger")
        assert list(watcher) == []

    def test_subscribe_before_connect(self):
        with pytest.raises(HubConnectionError):
            HubClient(MQTTConfig()).subscribe("logger")


class TestDisconnect:

    def test_closes_feeds_and_connection(self, hub, paho_client):
        presence = hub.connect("swap")
        watcher = hub.subscribe("logger")

        hub.disconnect()

        assert presence.closed
        assert watcher.closed
        paho_client.disconnect.assert_called_once()
        paho_client.loop_stop.assert_called()
        assert hub.client is None
        assert not hub.is_connected

    def test_unexpected_disconnect(self, hub, paho_client):
        hub.connect("swap")
        hub._on_disconnect(paho_client, None, None, 7, None)
        assert not hub.is_connected
