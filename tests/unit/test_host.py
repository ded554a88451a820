"""Unit tests for the headless host."""

from pulsar.host import LOG_ERROR, LOG_UPDATE, THEME_CHANGED, QueueHost


class TestQueueHost:
    def test_drain_all(self):
        host = QueueHost()
        host.emit(LOG_UPDATE, "a")
        host.emit(THEME_CHANGED, "light")

        events = host.drain()

        assert [(e.channel, e.payload) for e in events] == [
            (LOG_UPDATE, "a"),
            (THEME_CHANGED, "light"),
        ]
        assert host.drain() == []

    def test_drain_channel_prefix(self):
        host = QueueHost()
        host.emit(LOG_UPDATE, "a")
        host.emit(THEME_CHANGED, "light")
        host.emit(LOG_ERROR, "boom")

        log_events = host.drain("log:")

        assert [e.payload for e in log_events] == ["a", "boom"]
        assert [e.channel for e in host.drain()] == [THEME_CHANGED]

    def test_drain_exact_channel(self):
        host = QueueHost()
        host.emit(LOG_UPDATE, "a")
        host.emit(LOG_ERROR, "boom")

        assert [e.payload for e in host.drain(LOG_ERROR)] == ["boom"]
        assert [e.payload for e in host.drain()] == ["a"]

    def test_bounded(self):
        host = QueueHost(max_events=3)
        for i in range(5):
            host.emit(LOG_UPDATE, str(i))

        assert [e.payload for e in host.drain()] == ["2", "3", "4"]

    def test_directory_dialog(self):
        assert QueueHost().open_directory_dialog("Select") is None
        assert QueueHost(directory="/srv/app").open_directory_dialog("Select") == "/srv/app"
