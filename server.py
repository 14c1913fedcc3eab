import logging
import os
import threading
import uuid

from flask import Flask, jsonify, request
from flask_socketio import SocketIO, ConnectionRefusedError

from models import GameRoom

# Configuration
SECRET_KEY = os.getenv('CONNECT4_SECRET_KEY') or uuid.uuid4().hex
PING_INTERVAL = float(os.getenv('CONNECT4_PING_INTERVAL', '10'))
INACTIVITY_TIMEOUT = float(os.getenv('CONNECT4_INACTIVITY_TIMEOUT', '30'))
ROOM_TTL = float(os.getenv('CONNECT4_ROOM_TTL', '3600'))
HOST = os.getenv('CONNECT4_HOST', '0.0.0.0')
PORT = int(os.getenv('CONNECT4_PORT', '5000'))
LOG_LEVEL = os.getenv('CONNECT4_LOG_LEVEL', 'INFO')
ENGINEIO_LOGGER = os.getenv('CONNECT4_ENGINEIO_LOGGER', '').lower() in ('1', 'true', 'yes')

app = Flask(__name__)
app.config['SECRET_KEY'] = SECRET_KEY
socketio = SocketIO(app, engineio_logger=ENGINEIO_LOGGER, always_connect=True, transports=['websocket'])

logger = logging.getLogger(__name__)

# Room management
rooms = {}
connections = {}  # {socket_id: (room_code, SocketConnection)}
registry_lock = threading.Lock()


class SocketConnection:
    """A Socket.IO session seen by a GameRoom."""

    def __init__(self, sid, namespace='/'):
        self.sid = sid
        self.namespace = namespace
        self.is_open = True
        self.handshaking = True
        self.refusal = None

    def send(self, message):
        socketio.send(message, to=self.sid, namespace=self.namespace)

    def close(self, code, reason):
        if not self.is_open:
            return
        self.is_open = False
        logger.info('Closing %s (%s: %s)', self.sid, code, reason)
        if self.handshaking:
            # Let the connect handler refuse it instead
            self.refusal = reason
            return
        socketio.server.disconnect(self.sid, namespace=self.namespace)


def create_room():
    code = uuid.uuid4().hex
    with registry_lock:
        reap_idle_rooms()
        rooms[code] = GameRoom(
            code,
            scheduler=socketio,
            ping_interval=PING_INTERVAL,
            inactivity_timeout=INACTIVITY_TIMEOUT,
        )
    logger.info('Room created: %s', code)
    return code


def reap_idle_rooms():
    for code, room in list(rooms.items()):
        if room.is_empty() and room.idle_for() > ROOM_TTL:
            logger.info('Reclaiming idle room %s', code)
            rooms.pop(code, None)


def get_room(code):
    with registry_lock:
        return rooms.get(code)


def remove_connection(sid):
    entry = connections.pop(sid, None)
    if entry is None:
        return
    room_code, conn = entry
    conn.is_open = False
    room = get_room(room_code)
    if room is not None:
        room.leave(conn)


# HTTP routes
@app.route('/create', methods=['GET', 'POST'])
def handle_create():
    return jsonify({'roomId': create_room()})


@app.route('/room/<code>')
def handle_room_http(code):
    if get_room(code) is None:
        return 'Not Found', 404
    return 'Expected WebSocket', 400


# Socket events
@socketio.on('connect')
def handle_connect(auth=None):
    code = request.args.get('room')
    room = get_room(code) if code else None
    if room is None:
        logger.info('Refusing %s: unknown room %r', request.sid, code)
        raise ConnectionRefusedError('Room not found')

    conn = SocketConnection(request.sid)
    connections[request.sid] = (code, conn)
    seat = room.join(conn)
    conn.handshaking = False
    if seat is None:
        connections.pop(request.sid, None)
        raise ConnectionRefusedError(conn.refusal or 'Room full')


@socketio.on('disconnect')
def handle_disconnect(reason=None):
    remove_connection(request.sid)


@socketio.on('message')
def handle_message(data=None, *args):
    entry = connections.get(request.sid)
    if entry is None:
        return
    room_code, conn = entry
    room = get_room(room_code)
    if room is not None:
        room.handle_message(conn, data)


if __name__ == '__main__':
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    socketio.run(app, host=HOST, port=PORT)
