from matrixgame import socketio
from conftest import NAMESPACE


def events(client, name=None):
    received = client.get_received(NAMESPACE)
    if name is None:
        return received
    return [pkt['args'][0] for pkt in received if pkt['name'] == name]


def names(packets):
    return [pkt['name'] for pkt in packets]


def new_player(flask_app):
    player = socketio.test_client(flask_app, namespace=NAMESPACE)
    player.get_received(NAMESPACE)
    return player


def seat_both(flask_app, client):
    room_id = client.post('/api/rooms').get_json()['roomId']
    alice = new_player(flask_app)
    bob = new_player(flask_app)
    alice.emit('joinRoom', {'roomId': room_id, 'team': 'A'}, namespace=NAMESPACE)
    bob.emit('joinRoom', {'roomId': room_id.lower(), 'role': 'B'}, namespace=NAMESPACE)
    return room_id, alice, bob


def test_socket_connect_and_ping(sio_client):
    assert sio_client.is_connected(NAMESPACE)
    sio_client.emit('ping', {'n': 1}, namespace=NAMESPACE)
    assert events(sio_client, 'pong') == [{'n': 1}]


def test_join_unknown_room(sio_client):
    sio_client.emit('joinRoom', {'roomId': 'ZZZZZZ', 'team': 'A'}, namespace=NAMESPACE)
    assert events(sio_client, 'errorMsg') == [{'message': 'Room does not exist'}]


def test_malformed_payload_is_rejected(sio_client):
    sio_client.emit('pickRow', 'not-an-object', namespace=NAMESPACE)
    assert events(sio_client, 'errorMsg') == [{'message': 'Room id is required'}]


def test_join_then_start(flask_app, client):
    room_id = client.post('/api/rooms').get_json()['roomId']
    alice = new_player(flask_app)
    alice.emit('joinRoom', {'roomId': room_id, 'team': 'A'}, namespace=NAMESPACE)
    received = events(alice)
    assert names(received) == ['roomState', 'waiting']
    assert received[0]['args'][0]['players'] == {'A': True, 'B': False}
    assert received[0]['args'][0]['active'] is False

    bob = new_player(flask_app)
    bob.emit('joinRoom', {'roomId': room_id, 'team': 'B'}, namespace=NAMESPACE)
    for player in (alice, bob):
        started = events(player, 'gameStart')
        assert len(started) == 1
        assert started[0]['round'] == 1
        assert started[0]['scores'] == {'A': 0, 'B': 0}
        assert started[0]['picks'] == {'A': None, 'B': None}
        assert len(started[0]['board']) == 3


def test_full_round_over_socket(flask_app, client):
    room_id, alice, bob = seat_both(flask_app, client)
    board = events(alice, 'gameStart')[0]['board']
    bob.get_received(NAMESPACE)

    alice.emit('pickRow', {'roomId': room_id, 'row': 1}, namespace=NAMESPACE)
    bob.emit('pickCol', {'roomId': room_id, 'col': 2}, namespace=NAMESPACE)
    result = events(bob, 'roundResult')
    assert len(result) == 1
    assert result[0]['chosen'] == {'row': 1, 'col': 2}
    assert result[0]['delta'] == {'A': board[1][2]['a'], 'B': board[1][2]['b']}

    flask_app.extensions['matrixgame'].scheduler.advance(flask_app.config['ROUND_DELAY_SEC'])
    nxt = events(alice, 'nextRound')
    assert len(nxt) == 1
    assert nxt[0]['round'] == 2


def test_wrong_side_pick(flask_app, client):
    room_id, alice, bob = seat_both(flask_app, client)
    alice.get_received(NAMESPACE)
    alice.emit('pickCol', {'roomId': room_id, 'col': 0}, namespace=NAMESPACE)
    assert events(alice, 'errorMsg') == [{'message': 'You are not B (column chooser)'}]
    alice.emit('pickRow', {'roomId': room_id, 'row': 7}, namespace=NAMESPACE)
    invalid = events(alice, 'invalidPick')
    assert invalid[0]['message'] == 'Row must be 0, 1 or 2'
    assert invalid[0]['state']['roomId'] == room_id


def test_disconnect_then_grace_expiry(flask_app, client):
    room_id, alice, bob = seat_both(flask_app, client)
    bob.get_received(NAMESPACE)

    alice.disconnect(namespace=NAMESPACE)
    assert len(events(bob, 'opponentDisconnected')) == 1

    flask_app.extensions['matrixgame'].scheduler.advance(flask_app.config['DISCONNECT_GRACE_SEC'])
    received = events(bob)
    assert 'opponentLeft' in names(received)
    state = [p['args'][0] for p in received if p['name'] == 'roomState'][-1]
    assert state['active'] is False
    assert state['board'] is None


def test_leave_room(flask_app, client):
    room_id, alice, bob = seat_both(flask_app, client)
    alice.get_received(NAMESPACE)
    bob.get_received(NAMESPACE)

    alice.emit('leaveRoom', {'roomId': room_id}, namespace=NAMESPACE)
    assert names(events(bob)) == ['opponentLeft', 'roomState', 'waiting']
    assert names(events(alice)) == ['roomState']

    rooms = client.get('/api/rooms/list').get_json()['rooms']
    assert rooms[0]['roomId'] == room_id
    assert rooms[0]['availableTeam'] == 'A'


def test_unexpected_fault_is_reported_not_raised(flask_app, sio_client, monkeypatch):
    coordinator = flask_app.extensions['matrixgame']

    def boom(*args, **kwargs):
        raise RuntimeError('boom')

    monkeypatch.setattr(coordinator, 'restart', boom)
    sio_client.emit('restartGame', {'roomId': 'ABCDEF'}, namespace=NAMESPACE)
    assert events(sio_client, 'errorMsg') == [{'message': 'restartGame failed, please try again'}]
    assert sio_client.is_connected(NAMESPACE)
