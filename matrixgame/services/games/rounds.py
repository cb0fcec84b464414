"""Round state machine for a single room.

Functions here take a room plus an action and return the outbound events.
They never touch the transport or the scheduler; callers hold the room lock
and dispatch the events. Failures raise ``GameError`` subclasses.
"""

from collections import namedtuple
from typing import Any, Dict, List, Optional

from matrixgame.errors import InvalidPickError, ValidationError
from matrixgame.models import (
    ACTIVE,
    COL_CHOOSER,
    FINISHED,
    RESOLVING,
    ROLES,
    ROUNDS_PER_GAME,
    ROW_CHOOSER,
    Identity,
    Room,
    other_role,
)

TO_ROOM = 'room'
TO_CALLER = 'caller'

Event = namedtuple('Event', ['name', 'data', 'target'])

ROLE_LABELS = {ROW_CHOOSER: 'A (row chooser)', COL_CHOOSER: 'B (column chooser)'}
WAITING_MESSAGE = 'Waiting for another player to join...'


def room_event(name: str, data: Dict[str, Any]) -> Event:
    return Event(name, data, TO_ROOM)


def caller_event(name: str, data: Dict[str, Any]) -> Event:
    return Event(name, data, TO_CALLER)


def parse_role(role: Any) -> str:
    value = str(role or '').strip().upper()
    if value not in ROLES:
        raise ValidationError('Role must be A or B')
    return value


def parse_index(value: Any) -> Optional[int]:
    """Coerce a client-sent row/column to 0..2, or None if it is not one."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        index = int(value)
    except (TypeError, ValueError):
        return None
    return index if index in (0, 1, 2) else None


def winner_of(scores: Dict[str, int]) -> str:
    if scores[ROW_CHOOSER] == scores[COL_CHOOSER]:
        return 'DRAW'
    return ROW_CHOOSER if scores[ROW_CHOOSER] > scores[COL_CHOOSER] else COL_CHOOSER


def start_game(room: Room, generator) -> None:
    room.generation += 1
    room.cancel_round_task()
    room.state = ACTIVE
    room.round = 1
    room.scores = {ROW_CHOOSER: 0, COL_CHOOSER: 0}
    room.reset_picks()
    room.board = generator.generate()
    for role in ROLES:
        room.cancel_grace(role)


def check_seat(room: Room, role: str, identity: Identity) -> None:
    holder = room.seats[role]
    if holder is not None and holder != identity:
        raise ValidationError(f'Team {role} is already taken')


def join(room: Room, role: str, identity: Identity, generator) -> List[Event]:
    check_seat(room, role, identity)
    other = other_role(role)
    switched = room.seats[other] == identity
    if switched:
        room.seats[other] = None
    room.seats[role] = identity
    room.cancel_grace(role)
    if switched and room.active:
        # the seat given up has no owner and no grace timer left to end the game
        room.reset()
    room.settle_idle_state()

    events = [room_event('roomState', room.to_dict())]
    if room.is_full() and not room.active:
        start_game(room, generator)
        events.append(room_event('gameStart', room.to_dict()))
    elif not room.is_full():
        events.append(caller_event('waiting', {'message': WAITING_MESSAGE}))
    return events


def pick(room: Room, role: str, identity: Identity, index: Any) -> List[Event]:
    """Record a pick; resolves the round when both sides have picked."""
    if room.state == RESOLVING:
        raise InvalidPickError('This round is being resolved, wait for the next board', room.to_dict())
    if room.state != ACTIVE:
        raise ValidationError('The game has not started')
    if room.seats[role] != identity:
        raise ValidationError(f'You are not {ROLE_LABELS[role]}')

    axis = 'Row' if role == ROW_CHOOSER else 'Column'
    value = parse_index(index)
    if value is None:
        raise InvalidPickError(f'{axis} must be 0, 1 or 2', room.to_dict())
    if room.picks[role] is not None:
        raise InvalidPickError(f'{axis} already picked this round', room.to_dict())

    room.picks[role] = value
    events = [room_event('roomState', room.to_dict())]
    if room.both_picked():
        events.append(resolve_round(room))
    return events


def resolve_round(room: Room) -> Event:
    row, col, cell = room.chosen_cell()
    delta = {ROW_CHOOSER: cell['a'], COL_CHOOSER: cell['b']}
    room.scores[ROW_CHOOSER] += delta[ROW_CHOOSER]
    room.scores[COL_CHOOSER] += delta[COL_CHOOSER]
    room.state = RESOLVING
    return room_event('roundResult', {
        'chosen': {'row': row, 'col': col},
        'delta': delta,
        'scores': dict(room.scores),
        'round': room.round,
        'board': [[dict(c) for c in r] for r in room.board],
    })


def advance(room: Room, generator) -> List[Event]:
    """Close a resolved round: finish the game or deal the next board."""
    room.round_task = None
    room.reset_picks()
    if room.round >= ROUNDS_PER_GAME:
        room.state = FINISHED
        room.board = None
        final_scores = dict(room.scores)
        return [room_event('gameOver', {'finalScores': final_scores, 'winner': winner_of(final_scores)})]

    room.round += 1
    room.board = generator.generate(room.scores)
    room.state = ACTIVE
    return [room_event('nextRound', room.to_dict())]


def restart(room: Room, identity: Identity, generator) -> List[Event]:
    if not room.roles_of(identity):
        raise ValidationError('You are not in this room')
    if not room.is_full():
        raise ValidationError('Both players must be in the room to play again')
    if room.active:
        raise ValidationError('The current game has not finished yet')
    start_game(room, generator)
    return [room_event('gameStart', room.to_dict())]


def vacate(room: Room, identity: Identity) -> List[str]:
    """Free every seat the identity holds in this room."""
    roles = room.roles_of(identity)
    for role in roles:
        room.seats[role] = None
        room.cancel_grace(role)
    return roles


def leave(room: Room, identity: Identity) -> List[Event]:
    """Remove a player; the room resets for whoever remains.

    The caller deletes the room when ``room.is_occupied()`` is false
    afterwards.
    """
    if not vacate(room, identity):
        raise ValidationError('You are not in this room')
    room.reset()
    events = []
    if room.is_occupied():
        events.append(room_event('opponentLeft', {'message': 'Your opponent left; the room has been reset'}))
        events.append(room_event('roomState', room.to_dict()))
        events.append(room_event('waiting', {'message': WAITING_MESSAGE}))
    events.append(caller_event('roomState', room.to_dict()))
    return events


def detach(room: Room, identity: Identity) -> List[Event]:
    """Pull an identity out of a room because it joined another one."""
    if not vacate(room, identity):
        return []
    room.reset()
    if not room.is_occupied():
        return []
    return [
        room_event('opponentLeft', {'message': 'Your opponent left; the current game is over'}),
        room_event('roomState', room.to_dict()),
    ]
