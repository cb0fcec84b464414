import itertools
import math
import random
import threading
import time
from typing import Callable, Dict, List, Optional

from matrixgame.errors import RateLimitedError
from matrixgame.models import ROOM_ID_ALPHABET, ROOM_ID_LENGTH, Room


def generate_room_id(rng=random) -> str:
    """Generate a short, human-typeable room code."""
    return ''.join(rng.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))


class RoomRegistry:
    """Owns the live rooms; safe to call from any handler thread."""

    def __init__(
        self,
        cooldown_sec: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = generate_room_id,
    ) -> None:
        self.cooldown_sec = cooldown_sec
        self._clock = clock
        self._wall_clock = wall_clock
        self._id_factory = id_factory
        self._rooms: Dict[str, Room] = {}
        self._last_create: Dict[str, float] = {}
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    def create_room(self, requester_key: str) -> Room:
        with self._lock:
            now = self._clock()
            last = self._last_create.get(requester_key)
            if last is not None and self.cooldown_sec > 0:
                elapsed = now - last
                if elapsed < self.cooldown_sec:
                    raise RateLimitedError(max(1, math.ceil(self.cooldown_sec - elapsed)))
            self._last_create[requester_key] = now

            room_id = self._id_factory()
            while room_id in self._rooms:
                room_id = self._id_factory()
            room = Room(room_id, self._wall_clock(), next(self._sequence))
            self._rooms[room_id] = room
            return room

    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    def delete(self, room_id: str) -> None:
        with self._lock:
            self._rooms.pop(room_id, None)

    def is_live(self, room: Room) -> bool:
        with self._lock:
            return self._rooms.get(room.id) is room

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def list(self) -> List[Dict[str, object]]:
        """Summaries of rooms with at least one seated player, newest first."""
        listed = []
        for room in self.rooms():
            with room.lock:
                if not room.is_occupied():
                    continue
                listed.append((room.created_at, room.sequence, room.summary()))
        listed.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [summary for _, _, summary in listed]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
