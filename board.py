"""Connect-4 grid: gravity drops, four-in-a-row detection and fullness."""

ROWS = 6
COLS = 7
EMPTY = 0
CONNECT = 4

DIRECTIONS = (
    (0, 1),   # horizontal
    (1, 0),   # vertical
    (1, 1),   # diagonal down-right
    (1, -1),  # diagonal down-left
)


class Board:
    def __init__(self):
        self.cells = [[EMPTY] * COLS for _ in range(ROWS)]

    def drop_disc(self, col, color):
        """Drop a disc into `col` and return the row it lands in.

        Returns None when the column is out of range or already full; the
        grid is left untouched in that case.
        """
        if not isinstance(col, int) or isinstance(col, bool):
            return None
        if col < 0 or col >= COLS:
            return None

        for row in range(ROWS - 1, -1, -1):
            if self.cells[row][col] == EMPTY:
                self.cells[row][col] = color
                return row
        return None

    def detect_win(self, row, col):
        color = self.cells[row][col]
        if color == EMPTY:
            return False

        for dr, dc in DIRECTIONS:
            count = 1
            # Forward direction
            r, c = row + dr, col + dc
            while self._on_board(r, c) and self.cells[r][c] == color:
                count += 1
                r += dr
                c += dc
            # Backward direction
            r, c = row - dr, col - dc
            while self._on_board(r, c) and self.cells[r][c] == color:
                count += 1
                r -= dr
                c -= dc
            if count >= CONNECT:
                return True
        return False

    def is_full(self):
        return all(cell != EMPTY for row in self.cells for cell in row)

    def to_list(self):
        return [list(row) for row in self.cells]

    @staticmethod
    def _on_board(row, col):
        return 0 <= row < ROWS and 0 <= col < COLS
