from entity_import.core.config import settings
from entity_import.domain.pipeline.notifications import NotificationCenter


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_default_durations_follow_settings():
    center = NotificationCenter(clock=FakeClock())

    warning = center.warning("Warning", "Please upload a JSON file")
    error = center.error("Error", "Could not retrieve data for mapping")

    assert warning.duration_ms == settings.warning_notification_ms
    assert error.duration_ms == settings.error_notification_ms


def test_notifications_dismiss_themselves():
    clock = FakeClock()
    center = NotificationCenter(clock=clock)
    center.notify("warning", "Warning", "short", duration_ms=2000)
    center.notify("error", "Error", "long", duration_ms=4000)

    clock.now += 2.5

    assert [item.description for item in center.active()] == ["long"]
    assert [item.description for item in center.history] == ["short", "long"]

    clock.now += 2.0
    assert center.active() == []


def test_notifications_are_logged(caplog):
    center = NotificationCenter(clock=FakeClock())

    with caplog.at_level("WARNING", logger="entity_import.domain.pipeline.notifications"):
        center.error("CSV Import Error", "Error while preparing CSV file")

    assert "CSV Import Error: Error while preparing CSV file" in caplog.text


def test_clear_empties_history():
    center = NotificationCenter(clock=FakeClock())
    center.warning("Warning", "x")

    center.clear()

    assert center.history == []


def test_history_keeps_only_the_newest_notifications():
    clock = FakeClock()
    center = NotificationCenter(clock=clock, history_size=3)

    for index in range(5):
        center.warning("Warning", f"notice {index}")
        clock.now += 10

    assert [item.description for item in center.history] == ["notice 2", "notice 3", "notice 4"]
    assert center.active() == []
