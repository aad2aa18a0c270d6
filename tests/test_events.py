"""Tests for the focus/reconnect listener registry."""

from querylite import EventRegistry, Listeners


class TestRegister:
    """Tests for listener registration."""

    def test_register_and_emit(self, events: EventRegistry) -> None:
        calls: list[str] = []
        events.register(
            "user:1",
            Listeners(
                focus=lambda: calls.append("focus"),
                online=lambda: calls.append("online"),
            ),
        )

        events.emit_focus()
        events.emit_online()
        assert calls == ["focus", "online"]

    def test_reregistration_replaces(self, events: EventRegistry) -> None:
        """Only the latest listeners for a key stay installed."""
        calls: list[str] = []
        events.register("k", Listeners(online=lambda: calls.append("old")))
        events.register("k", Listeners(online=lambda: calls.append("new")))

        events.emit_online()
        assert calls == ["new"]
        assert len(events) == 1

    def test_unregister(self, events: EventRegistry) -> None:
        calls: list[str] = []
        unregister = events.register("k", Listeners(online=lambda: calls.append("x")))
        unregister()

        events.emit_online()
        assert calls == []
        assert "k" not in events

    def test_stale_unregister_keeps_replacement(self, events: EventRegistry) -> None:
        """Unregistering replaced listeners leaves the newer pair alone."""
        old = events.register("k", Listeners(online=lambda: None))
        newer = Listeners(online=lambda: None)
        events.register("k", newer)

        old()
        assert events.get("k") is newer


class TestEmit:
    """Tests for signal delivery."""

    def test_focus_ignored_when_hidden(self, events: EventRegistry) -> None:
        calls: list[str] = []
        events.register("k", Listeners(focus=lambda: calls.append("focus")))

        events.emit_focus(visible=False)
        assert calls == []

    def test_unsubscribed_signal_skipped(self, events: EventRegistry) -> None:
        calls: list[str] = []
        events.register("k", Listeners(online=lambda: calls.append("online")))

        events.emit_focus()
        assert calls == []

    def test_listener_may_unregister_during_emit(self, events: EventRegistry) -> None:
        unregisters = []

        def online() -> None:
            unregisters[0]()

        unregisters.append(events.register("k", Listeners(online=online)))
        events.emit_online()
        assert len(events) == 0
