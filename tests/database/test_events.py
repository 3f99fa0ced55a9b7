"""ChangeNotifier tests."""
from database import ChangeNotifier


class TestChangeNotifier:

    def test_emit_calls_every_listener(self):
        notifier = ChangeNotifier()
        calls = []
        notifier.subscribe(lambda: calls.append("a"))
        notifier.subscribe(lambda: calls.append("b"))
        notifier.emit()
        assert sorted(calls) == ["a", "b"]

    def test_duplicate_subscription_is_ignored(self):
        notifier = ChangeNotifier()
        calls = []

        def listener():
            calls.append(1)

        notifier.subscribe(listener)
        notifier.subscribe(listener)
        notifier.emit()
        assert calls == [1]
        assert notifier.listener_count == 1

    def test_unsubscribe(self):
        notifier = ChangeNotifier()
        calls = []

        def listener():
            calls.append(1)

        notifier.subscribe(listener)
        notifier.unsubscribe(listener)
        notifier.unsubscribe(listener)
        notifier.emit()
        assert calls == []

    def test_failing_listener_does_not_stop_others(self):
        notifier = ChangeNotifier()
        calls = []

        def broken():
            raise RuntimeError("boom")

        notifier.subscribe(broken)
        notifier.subscribe(lambda: calls.append("ok"))
        notifier.emit()
        assert calls == ["ok"]
