"""Disconnect grace handling.

A dropped player's seat is freed at once but the game keeps running; the
drop is tagged with the time it happened. If nobody reclaims the seat before
the grace period runs out, the game is ended for the remaining player.
"""

from typing import List

from matrixgame.models import Identity, Room
from .rounds import Event, room_event, vacate

DISCONNECTED_MESSAGE = 'Your opponent disconnected, waiting for them to reconnect...'
LEFT_MESSAGE = 'Your opponent left; the current game is over'


def mark_offline(room: Room, identity: Identity, now: float) -> List[str]:
    """Free the identity's seats and tag each with the drop time."""
    roles = vacate(room, identity)
    for role in roles:
        room.offline_since[role] = now
    room.settle_idle_state()
    return roles


def offline_events(room: Room) -> List[Event]:
    return [
        room_event('roomState', room.to_dict()),
        room_event('opponentDisconnected', {'message': DISCONNECTED_MESSAGE}),
    ]


def is_current(room: Room, role: str, tag: float) -> bool:
    """False when the seat was reclaimed or dropped again since ``tag``."""
    return room.offline_since.get(role) == tag


def expire(room: Room, role: str) -> List[Event]:
    """End the room's game after a grace window ran out.

    The game always ends here, but another seat's grace window stays open so
    that seat can still be reclaimed. The caller deletes the room when it is
    left with nobody seated and no other grace window pending.
    """
    room.grace_timers[role] = None
    room.offline_since[role] = None
    room.end_game()
    if not room.is_occupied():
        return []
    return [
        room_event('opponentLeft', {'message': LEFT_MESSAGE}),
        room_event('roomState', room.to_dict()),
    ]
