"""Wire records exchanged with clients.

Every record is a JSON object with a `type` field. Inbound records are
parsed into one of the client dataclasses below; anything else raises
ProtocolError. Outbound records are built by the server dataclasses and
turned into plain dicts with `payload()` right before they are sent.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Optional

PALETTE = (1, 2)  # 1 = red, 2 = yellow
MAX_NAME_LENGTH = 12


class ProtocolError(ValueError):
    """Raised for an inbound record that cannot be understood."""


# Client -> server

@dataclass
class ClaimIdentity:
    name: str = ''
    color: Optional[int] = None


@dataclass
class SubmitMove:
    col: int


@dataclass
class KeepAlive:
    pass


def _parse_name(data):
    name = data.get('name') or ''
    if not isinstance(name, str):
        raise ProtocolError(f'name must be a string, got {name!r}')
    color = data.get('color')
    if color not in PALETTE or isinstance(color, bool):
        color = None
    return ClaimIdentity(name=name.strip()[:MAX_NAME_LENGTH], color=color)


def _parse_move(data):
    col = data.get('col')
    if not isinstance(col, int) or isinstance(col, bool):
        raise ProtocolError(f'col must be an integer, got {col!r}')
    return SubmitMove(col=col)


PARSERS = {
    'name': _parse_name,
    'move': _parse_move,
    'ping': lambda data: KeepAlive(),
}


def parse_client_message(raw):
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ProtocolError(f'invalid JSON: {e}') from e
    if not isinstance(raw, dict):
        raise ProtocolError(f'expected a JSON object, got {type(raw).__name__}')

    kind = raw.get('type')
    parser = PARSERS.get(kind)
    if parser is None:
        raise ProtocolError(f'unknown message type {kind!r}')
    return parser(raw)


# Server -> client

@dataclass
class Snapshot:
    board: list
    turn: int
    winner: int
    names: dict
    colors: dict
    gameStarted: bool


@dataclass
class Init:
    player: int
    snapshot: Snapshot

    def payload(self):
        return {'type': 'init', 'player': self.player, **asdict(self.snapshot)}


@dataclass
class Update:
    snapshot: Snapshot

    def payload(self):
        return {'type': 'update', **asdict(self.snapshot)}


@dataclass
class Names:
    names: dict = field(default_factory=dict)
    colors: dict = field(default_factory=dict)

    def payload(self):
        return {'type': 'names', 'names': dict(self.names), 'colors': dict(self.colors)}


@dataclass
class Error:
    message: str

    def payload(self):
        return {'type': 'error', 'message': self.message}


@dataclass
class Ping:
    def payload(self):
        return {'type': 'ping'}
