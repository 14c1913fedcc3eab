import logging
import threading
import time

from board import Board
from liveness import (
    CLOSE_GOING_AWAY,
    CLOSE_NORMAL,
    INACTIVITY_TIMEOUT,
    PING_INTERVAL,
    LivenessMonitor,
)
from messages import (
    ClaimIdentity,
    Error,
    Init,
    KeepAlive,
    Names,
    Ping,
    ProtocolError,
    Snapshot,
    SubmitMove,
    Update,
    parse_client_message,
)
from turns import ENDED, TurnState

MAX_PLAYERS = 2

logger = logging.getLogger(__name__)


class GameRoom:
    """One Connect-4 match and the connections seated in it.

    Connections are duck-typed: they need `send(dict)`, `close(code, reason)`
    and an `is_open` attribute. Every public method takes the room lock, so
    events for one room never interleave.
    """

    def __init__(self, code, capacity=MAX_PLAYERS, scheduler=None, clock=time.time,
                 ping_interval=PING_INTERVAL, inactivity_timeout=INACTIVITY_TIMEOUT):
        self.code = code
        self.capacity = capacity
        self.scheduler = scheduler
        self.clock = clock
        self.ping_interval = ping_interval
        self.inactivity_timeout = inactivity_timeout

        self.seats = {}  # {seat: connection}
        self.names = {}
        self.colors = {}
        self.monitors = {}  # {seat: LivenessMonitor}
        self.board = Board()
        self.turns = TurnState(capacity)
        self.lock = threading.RLock()

        self.created_at = clock()
        self.last_activity = self.created_at

    # Read-only views

    @property
    def phase(self):
        return self.turns.phase

    @property
    def winner(self):
        return self.turns.winner

    @property
    def started(self):
        return self.turns.started

    def is_empty(self):
        return not self.seats

    def idle_for(self):
        return self.clock() - self.last_activity

    def seat_of(self, connection):
        for seat, conn in self.seats.items():
            if conn is connection:
                return seat
        return None

    def snapshot(self):
        return Snapshot(
            board=self.board.to_list(),
            turn=self.turns.turn_seat,
            winner=self.turns.winner,
            names=dict(self.names),
            colors=dict(self.colors),
            gameStarted=self.turns.started,
        )

    # Inbound events

    def join(self, connection):
        """Seat a new connection; returns its seat number or None if full."""
        with self.lock:
            seat = self._free_seat()
            if seat is None:
                logger.info('Room %s is full, rejecting connection', self.code)
                self._send(connection, Error('Room full'))
                connection.close(CLOSE_NORMAL, 'Room full')
                return None

            self.seats[seat] = connection
            self.last_activity = self.clock()
            if seat not in self.names:
                self.names[seat] = default_name(seat)
                self.colors[seat] = seat
            logger.info('Seat %s joined room %s', seat, self.code)

            just_started = self.turns.seat_filled(self.seats)
            self._send(connection, Init(seat, self.snapshot()))
            if just_started:
                logger.info('Room %s started', self.code)
                self._broadcast(Update(self.snapshot()))

            self._start_monitor(seat, connection)
            return seat

    def handle_message(self, connection, raw):
        with self.lock:
            self.last_activity = self.clock()
            seat = self.seat_of(connection)
            if seat is None:
                return

            try:
                message = parse_client_message(raw)
            except ProtocolError as e:
                logger.debug('Dropping record from seat %s in room %s: %s', seat, self.code, e)
                return

            if isinstance(message, ClaimIdentity):
                self.claim_identity(seat, message.name, message.color)
            elif isinstance(message, SubmitMove):
                self.submit_move(seat, message.col)
            elif isinstance(message, KeepAlive):
                pass
            else:
                raise TypeError(f'unhandled message {message!r}')

    def claim_identity(self, seat, name, color=None):
        with self.lock:
            if seat not in self.seats:
                return
            self.names[seat] = name or default_name(seat)
            self.colors[seat] = color or seat
            self._broadcast(Names(self.names, self.colors))

    def submit_move(self, seat, col):
        """Apply a move; returns True if it was accepted.

        Wrong turn, a finished or unstarted game, and full or out of range
        columns are all dropped without touching state or broadcasting.
        """
        with self.lock:
            if not self.turns.can_move(seat):
                logger.debug('Rejected move from seat %s in room %s: not their turn', seat, self.code)
                return False

            row = self.board.drop_disc(col, self.colors.get(seat, seat))
            if row is None:
                logger.debug('Rejected move from seat %s in room %s: column %r', seat, self.code, col)
                return False

            won = self.board.detect_win(row, col)
            full = not won and self.board.is_full()
            self.turns.record_move(seat, won, full, self.seats)
            if self.phase == ENDED:
                logger.info('Room %s finished, winner %s', self.code, self.winner)

            self._broadcast(Update(self.snapshot()))
            return True

    def leave(self, connection):
        """Release the connection's seat. Safe to call more than once."""
        with self.lock:
            seat = self.seat_of(connection)
            if seat is None:
                return None

            del self.seats[seat]
            self.names.pop(seat, None)
            self.colors.pop(seat, None)
            monitor = self.monitors.pop(seat, None)
            if monitor is not None:
                monitor.stop()

            self.turns.seat_vacated(self.seats)
            logger.info('Seat %s left room %s', seat, self.code)
            self._broadcast(Update(self.snapshot()))
            return seat

    def check_liveness(self, connection):
        """Timer callback: evict on inactivity, otherwise ping.

        Returns False once the connection no longer needs a timer.
        """
        with self.lock:
            if self.seat_of(connection) is None:
                return False

            if self.idle_for() > self.inactivity_timeout:
                logger.info('Room %s inactive for %.0fs, closing connection', self.code, self.idle_for())
                connection.close(CLOSE_GOING_AWAY, 'Inactivity timeout')
                self.leave(connection)
                return False

            if connection.is_open:
                self._send(connection, Ping())
            return True

    # Helpers

    def _free_seat(self):
        for seat in range(1, self.capacity + 1):
            if seat not in self.seats:
                return seat
        return None

    def _start_monitor(self, seat, connection):
        monitor = LivenessMonitor(self, connection, interval=self.ping_interval)
        self.monitors[seat] = monitor
        if self.scheduler is not None:
            monitor.start(self.scheduler)

    def _broadcast(self, message):
        for conn in list(self.seats.values()):
            self._send(conn, message)

    def _send(self, connection, message):
        if not connection.is_open:
            return
        try:
            connection.send(message.payload())
        except Exception:
            logger.warning('Send to room %s failed', self.code, exc_info=True)


def default_name(seat):
    return f'Player {seat}'
