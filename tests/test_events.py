from datetime import datetime, timedelta

from vita_engine.events import EventSource, ScreenTimeTracker, StepSensor

T0 = datetime(2025, 9, 15, 7, 0, 0)


def test_subscribe_returns_unsubscribe():
    source = EventSource()
    received = []
    unsubscribe = source.subscribe(received.append)

    source.emit(1)
    unsubscribe()
    source.emit(2)

    assert received == [1]
    assert source.subscriber_count == 0


def test_step_sensor_ignores_motion_until_started():
    sensor = StepSensor()

    assert sensor.handle_motion(0, 0, 30, T0) is None


def test_step_sensor_detects_and_classifies_steps():
    sensor = StepSensor()
    received = []
    sensor.subscribe(received.append)
    sensor.start()

    assert sensor.handle_motion(0, 0, 9, T0) is None
    walking = sensor.handle_motion(0, 0, 12, T0)
    assert sensor.handle_motion(0, 0, 30, T0 + timedelta(milliseconds=100)) is None
    running = sensor.handle_motion(0, 0, 30, T0 + timedelta(milliseconds=300))
    stairs = sensor.handle_motion(0, 0, 20, T0 + timedelta(milliseconds=600))

    assert walking.activity_type == "walking"
    assert walking.confidence == 0.6
    assert running.activity_type == "running"
    assert running.confidence == 1.0
    assert stairs.activity_type == "stairs"
    assert received == [walking, running, stairs]
    assert all(sample.count == 1 for sample in received)


def test_step_sensor_stop_is_idempotent():
    sensor = StepSensor()
    sensor.stop()
    sensor.start()
    sensor.stop()

    assert not sensor.is_tracking
    assert sensor.handle_motion(0, 0, 30, T0) is None


def test_screen_tracker_drops_short_sessions():
    tracker = ScreenTimeTracker()
    tracker.handle_focus(T0)

    assert tracker.handle_blur(T0 + timedelta(seconds=20)) is None


def test_screen_tracker_emits_session_sample():
    tracker = ScreenTimeTracker()
    received = []
    tracker.subscribe(received.append)

    tracker.handle_visibility_change(False, T0)
    sample = tracker.handle_visibility_change(True, T0 + timedelta(minutes=2))

    assert sample.app_name == "Vita Navigator"
    assert sample.duration_minutes == 2.0
    assert sample.category == "wellness"
    assert sample.is_wellness_app
    assert sample.timestamp == T0
    assert received == [sample]


def test_blur_without_focus_is_ignored():
    tracker = ScreenTimeTracker(app_name="Slack")

    assert tracker.handle_visibility_change(True, T0) is None
