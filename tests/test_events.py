from unittest.mock import MagicMock

from authshell.utils.events import EventChannel


class TestEventChannel:
    def test_publish_reaches_subscribers_in_order(self):
        """Should deliver the payload to every subscriber in order."""
        channel = EventChannel("test")
        received = []
        channel.subscribe(lambda p: received.append(("a", p)))
        channel.subscribe(lambda p: received.append(("b", p)))

        channel.publish(1)

        assert received == [("a", 1), ("b", 1)]

    def test_unsubscribe(self):
        """Should stop delivery after unsubscribe, and tolerate repeats."""
        channel = EventChannel("test")
        received = []
        subscription = channel.subscribe(received.append)

        subscription.unsubscribe()
        subscription.unsubscribe()
        channel.publish("x")

        assert received == []
        assert not subscription.active
        assert channel.subscriber_count == 0

    def test_failing_subscriber_does_not_block_others(self):
        """Should log a failing subscriber and keep notifying the rest."""
        logger = MagicMock()
        channel = EventChannel("test", logger)
        received = []

        def broken(_payload):
            raise RuntimeError("listener bug")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        channel.publish("x")

        assert received == ["x"]
        logger.warning.assert_called_once()

    def test_unsubscribe_during_publish(self):
        """Should allow a listener to unsubscribe while being notified."""
        channel = EventChannel("test")
        received = []
        holder = {}

        def once(payload):
            received.append(payload)
            holder["sub"].unsubscribe()

        holder["sub"] = channel.subscribe(once)
        channel.publish(1)
        channel.publish(2)

        assert received == [1]
