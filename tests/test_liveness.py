"""Tests for keep-alive pings and inactivity eviction."""

import threading

from liveness import CLOSE_GOING_AWAY, LivenessMonitor


class InlineScheduler:
    """Runs background tasks in the calling thread."""

    def __init__(self):
        self.started = []

    def start_background_task(self, target, *args):
        self.started.append(target)
        return target(*args)


class ThreadScheduler:
    def start_background_task(self, target, *args):
        thread = threading.Thread(target=target, args=args, daemon=True)
        thread.start()
        return thread


class SteppingEvent:
    """Stands in for the monitor's cancel event; each wait moves the clock."""

    def __init__(self, on_wait, limit):
        self.on_wait = on_wait
        self.limit = limit
        self.waits = []
        self.flag = False

    def wait(self, timeout):
        self.waits.append(timeout)
        if len(self.waits) > self.limit:
            raise AssertionError('monitor kept running')
        self.on_wait(timeout)
        return self.flag

    def set(self):
        self.flag = True

    def is_set(self):
        return self.flag


class TestTick:
    def test_ping_while_active(self, room, seated, clock):
        first, second = seated
        clock.advance(10)
        assert room.monitors[1].tick() is True
        assert first.last == {'type': 'ping'}
        assert first.is_open

    def test_evicts_after_timeout(self, room, seated, clock):
        first, second = seated
        clock.advance(31)
        assert room.monitors[1].tick() is False
        assert first.closed == (CLOSE_GOING_AWAY, 'Inactivity timeout')
        assert 1 not in room.seats
        assert not room.started
        assert second.last['type'] == 'update'
        assert second.last['gameStarted'] is False

    def test_threshold_is_exclusive(self, room, seated, clock):
        first, _ = seated
        clock.advance(30)
        assert room.monitors[1].tick() is True
        assert first.closed is None

    def test_opponent_activity_keeps_quiet_seat(self, room, seated, clock):
        first, second = seated
        for _ in range(5):
            clock.advance(20)
            room.handle_message(second, {'type': 'ping'})
            assert room.monitors[1].tick() is True
        assert first.closed is None
        assert first.of_type('ping')

    def test_no_ping_to_closed_connection(self, room, seated, clock):
        first, _ = seated
        first.is_open = False
        count = len(first.sent)
        clock.advance(10)
        room.monitors[1].tick()
        assert len(first.sent) == count

    def test_stopped_monitor_does_nothing(self, room, seated, clock):
        first, _ = seated
        monitor = room.monitors[1]
        monitor.stop()
        clock.advance(100)
        assert monitor.tick() is False
        assert first.closed is None

    def test_monitor_for_departed_connection_stops(self, room, seated, conn_factory):
        first, _ = seated
        monitor = LivenessMonitor(room, conn_factory())
        assert monitor.tick() is False
        assert monitor.stopped


class TestRun:
    def test_runs_until_eviction(self, room, seated, clock):
        first, _ = seated
        monitor = room.monitors[1]
        monitor.cancelled = SteppingEvent(clock.advance, limit=5)

        monitor.start(InlineScheduler())
        # The fifth wait sees the cancel and ends the loop
        assert monitor.cancelled.waits == [10] * 5
        assert len(first.of_type('ping')) == 3
        assert first.closed == (CLOSE_GOING_AWAY, 'Inactivity timeout')
        assert monitor.stopped

    def test_leave_cancels_timer(self, room, seated):
        first, _ = seated
        monitor = room.monitors[1]
        monitor.cancelled = SteppingEvent(lambda timeout: room.leave(first), limit=1)

        monitor.start(InlineScheduler())
        assert monitor.cancelled.waits == [10]
        assert not first.of_type('ping')

    def test_leave_wakes_sleeping_timer(self, room, seated):
        first, _ = seated
        monitor = room.monitors[1]
        monitor.interval = 3600

        thread = monitor.start(ThreadScheduler())
        room.leave(first)
        thread.join(timeout=2)
        assert not thread.is_alive()
        assert not first.of_type('ping')

    def test_room_starts_timer_on_join(self, clock, conn_factory):
        from models import GameRoom

        class RecordingScheduler(InlineScheduler):
            def start_background_task(self, target, *args):
                self.started.append(target)

        scheduler = RecordingScheduler()
        room = GameRoom('timed', scheduler=scheduler, clock=clock)
        room.join(conn_factory())
        assert scheduler.started == [room.monitors[1].run]
