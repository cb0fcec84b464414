import functools

from flask import current_app, request
from flask_socketio import emit

from matrixgame import socketio
from matrixgame.models import COL_CHOOSER, ROW_CHOOSER, Identity


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


class SocketIOBroadcaster:
    """Delivers coordinator events over Flask-SocketIO.

    Works both inside a handler and from background timers, so it always
    names the namespace and never relies on the request context.
    """

    def __init__(self, sio, namespace: str) -> None:
        self.socketio = sio
        self.namespace = namespace

    def to_room(self, room_id, event, data):
        self.socketio.emit(event, data, to=room_channel(room_id), namespace=self.namespace)

    def to_identity(self, identity, event, data):
        self.socketio.emit(event, data, to=identity.key, namespace=self.namespace)

    def attach(self, identity, room_id):
        self.socketio.server.enter_room(identity.key, room_channel(room_id), namespace=self.namespace)

    def detach(self, identity, room_id):
        self.socketio.server.leave_room(identity.key, room_channel(room_id), namespace=self.namespace)


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _identity() -> Identity:
    return Identity(_get_sid())


def _coordinator():
    return current_app.extensions['matrixgame']


def _guarded(action):
    """Catch unexpected faults at the handler boundary.

    Expected failures are already reported by the coordinator; anything
    that escapes is logged and surfaced as a generic error to the caller.
    """
    def decorator(handler):
        @functools.wraps(handler)
        def wrapper(data=None):
            try:
                return handler(data if isinstance(data, dict) else {})
            except Exception:
                current_app.logger.exception(f"[handler-fault] action={action} sid={_get_sid()}")
                emit('errorMsg', {'message': f'{action} failed, please try again'})
        return wrapper
    return decorator


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={_get_sid()} origin={request.headers.get('Origin')}")


def handle_disconnect(reason=None):
    identity = _identity()
    current_app.logger.info(f"[disconnect] sid={identity.key} reason={reason}")
    try:
        _coordinator().disconnect(identity)
    except Exception:
        current_app.logger.exception(f"[handler-fault] action=disconnect sid={identity.key}")


@_guarded('joinRoom')
def handle_join_room(data):
    role = data.get('role', data.get('team'))
    _coordinator().join(data.get('roomId'), role, _identity())


@_guarded('pickRow')
def handle_pick_row(data):
    _coordinator().pick(data.get('roomId'), ROW_CHOOSER, _identity(), data.get('row'))


@_guarded('pickCol')
def handle_pick_col(data):
    _coordinator().pick(data.get('roomId'), COL_CHOOSER, _identity(), data.get('col'))


@_guarded('restartGame')
def handle_restart_game(data):
    _coordinator().restart(data.get('roomId'), _identity())


@_guarded('leaveRoom')
def handle_leave_room(data):
    _coordinator().leave(data.get('roomId'), _identity())


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('joinRoom', handle_join_room, namespace=namespace)
    socketio.on_event('pickRow', handle_pick_row, namespace=namespace)
    socketio.on_event('pickCol', handle_pick_col, namespace=namespace)
    socketio.on_event('restartGame', handle_restart_game, namespace=namespace)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
