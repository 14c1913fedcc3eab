"""Per-connection keep-alive timer.

Each seated connection gets one monitor. Every `interval` seconds it asks
the room to check inactivity: the room either evicts the connection or
sends it a ping. The inactivity clock is room-wide, so a quiet player is
kept alive by the opponent's traffic.
"""

import logging
import threading

PING_INTERVAL = 10
INACTIVITY_TIMEOUT = 30

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """Timer loop that waits on an event, so `stop()` wakes it at once."""

    def __init__(self, room, connection, interval=PING_INTERVAL):
        self.room = room
        self.connection = connection
        self.interval = interval
        self.cancelled = threading.Event()

    @property
    def stopped(self):
        return self.cancelled.is_set()

    def start(self, scheduler):
        """Run the timer as a background task of `scheduler`, normally the SocketIO instance."""
        return scheduler.start_background_task(self.run)

    def run(self):
        while not self.cancelled.wait(self.interval):
            self.tick()
        logger.debug('Liveness timer exited for room %s', self.room.code)

    def tick(self):
        if self.stopped:
            return False
        alive = self.room.check_liveness(self.connection)
        if not alive:
            self.stop()
        return alive

    def stop(self):
        self.cancelled.set()
