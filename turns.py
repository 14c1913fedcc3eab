"""Turn sequencing for one match.

The machine has three phases, derived from two flags and the winner:

    waiting  -- fewer seats occupied than the room holds
    playing  -- every seat occupied and nobody has won yet
    ended    -- a winner (or a draw) has been recorded

Leaving a seat only drops the `started` flag. The board, the winner and
whose turn it was stay as they are so a replacement player can resume.
"""

WAITING = 'waiting'
PLAYING = 'playing'
ENDED = 'ended'

FIRST_SEAT = 1
DRAW = 0  # winner sentinel when the board fills up with no four-in-a-row


class TurnState:
    def __init__(self, capacity=2):
        self.capacity = capacity
        self.turn_seat = FIRST_SEAT
        self.started = False
        self.winner = None

    @property
    def phase(self):
        if not self.started:
            return WAITING
        if self.winner is not None:
            return ENDED
        return PLAYING

    def seat_filled(self, occupied):
        """Start the match once every seat is taken.

        Returns True only on the transition itself, so the caller knows to
        broadcast. Seat 1 always moves first, even on a resumed board.
        """
        if self.started or len(occupied) < self.capacity:
            return False
        self.started = True
        self.turn_seat = FIRST_SEAT
        return True

    def seat_vacated(self, occupied):
        if len(occupied) < self.capacity:
            self.started = False

    def can_move(self, seat):
        return self.phase == PLAYING and seat == self.turn_seat

    def record_move(self, seat, won, full, occupied):
        if won:
            self.winner = seat
        elif full:
            self.winner = DRAW
        else:
            self.advance(seat, occupied)

    def advance(self, mover, occupied):
        # Recomputed from the live seat set on every move
        seats = sorted(occupied)
        if not seats:
            return
        if mover not in seats:
            self.turn_seat = seats[0]
            return
        idx = seats.index(mover)
        self.turn_seat = seats[(idx + 1) % len(seats)]
