import logging
from typing import Any, Iterable, List, Optional

from matrixgame.errors import GameError, NotFoundError, ValidationError
from matrixgame.models import RESOLVING, Identity, Room, normalize_room_id
from . import rounds, watchdog
from .rounds import TO_CALLER, Event


class GameCoordinator:
    """Authoritative entry point for every room action.

    Each room is mutated only while holding its own lock, so actions on a
    room are applied one at a time in arrival order. Delayed work (the
    post-round reveal delay and disconnect grace windows) goes through the
    scheduler and re-validates its tag before touching the room.
    """

    def __init__(
        self,
        registry,
        generator,
        scheduler,
        broadcaster,
        round_delay: float = 0.7,
        grace_period: float = 60.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.registry = registry
        self.generator = generator
        self.scheduler = scheduler
        self.broadcaster = broadcaster
        self.round_delay = round_delay
        self.grace_period = grace_period
        self.logger = logger or logging.getLogger(__name__)

    # ---- registry surface ----

    def create_room(self, requester_key: str) -> str:
        room = self.registry.create_room(requester_key)
        self.logger.info(f"[room-create] room={room.id} requester={requester_key}")
        return room.id

    def list_rooms(self) -> List[dict]:
        return self.registry.list()

    def get_state(self, room_id: Any) -> Optional[dict]:
        room = self.registry.get(normalize_room_id(room_id))
        if room is None:
            return None
        with room.lock:
            return room.to_dict()

    # ---- actions ----

    def join(self, room_id: Any, role: Any, identity: Identity) -> None:
        try:
            room = self._require_room(room_id)
            role = rounds.parse_role(role)
            with room.lock:
                rounds.check_seat(room, role, identity)
            self._detach_elsewhere(identity, keep=room.id)
            with room.lock:
                if not self.registry.is_live(room):
                    raise NotFoundError('Room does not exist')
                rounds.check_seat(room, role, identity)
                self.broadcaster.attach(identity, room.id)
                events = rounds.join(room, role, identity, self.generator)
                self.logger.info(f"[join] room={room.id} role={role} state={room.state} round={room.round}")
                self._dispatch(room.id, identity, events)
        except GameError as exc:
            self._reject(identity, exc)

    def pick(self, room_id: Any, role: str, identity: Identity, index: Any) -> None:
        try:
            room = self._require_room(room_id)
            with room.lock:
                events = rounds.pick(room, role, identity, index)
                if room.state == RESOLVING:
                    self.logger.info(
                        f"[round-resolve] room={room.id} round={room.round} picks={room.picks} scores={room.scores}"
                    )
                    room.round_task = self.scheduler.call_later(
                        self.round_delay,
                        self._finish_round,
                        room.id,
                        room.generation,
                        room.round,
                        label=f'round:{room.id}:{room.round}',
                    )
                self._dispatch(room.id, identity, events)
        except GameError as exc:
            self._reject(identity, exc)

    def restart(self, room_id: Any, identity: Identity) -> None:
        try:
            room = self._require_room(room_id)
            with room.lock:
                events = rounds.restart(room, identity, self.generator)
                self.logger.info(f"[game-start] room={room.id} restart=true")
                self._dispatch(room.id, identity, events)
        except GameError as exc:
            self._reject(identity, exc)

    def leave(self, room_id: Any, identity: Identity) -> None:
        try:
            room = self._require_room(room_id)
            with room.lock:
                events = rounds.leave(room, identity)
                self.broadcaster.detach(identity, room.id)
                self.logger.info(f"[leave] room={room.id} remaining={room.is_occupied()}")
                if not room.is_occupied():
                    self._delete(room)
                self._dispatch(room.id, identity, events)
        except GameError as exc:
            self._reject(identity, exc)

    def disconnect(self, identity: Identity) -> None:
        for room in self.registry.rooms():
            with room.lock:
                if not self.registry.is_live(room):
                    continue
                now = self.scheduler.now()
                roles = watchdog.mark_offline(room, identity, now)
                if not roles:
                    continue
                for role in roles:
                    room.grace_timers[role] = self.scheduler.call_later(
                        self.grace_period,
                        self._grace_expired,
                        room.id,
                        role,
                        now,
                        label=f'grace:{room.id}:{role}',
                    )
                    self.logger.info(f"[grace-start] room={room.id} role={role} grace={self.grace_period}s")
                self._dispatch(room.id, identity, watchdog.offline_events(room))

    # ---- scheduled callbacks ----

    def _finish_round(self, room_id: str, generation: int, round_no: int) -> None:
        room = self.registry.get(room_id)
        if room is None:
            self.logger.info(f"[timer-abort] room={room_id} round={round_no} room gone")
            return
        with room.lock:
            if not self.registry.is_live(room) or room.generation != generation or room.state != RESOLVING:
                self.logger.info(f"[timer-abort] room={room_id} round={round_no} stale")
                return
            events = rounds.advance(room, self.generator)
            self.logger.info(f"[timer-fire] room={room_id} round={round_no} -> state={room.state} round={room.round}")
            self._dispatch(room.id, None, events)

    def _grace_expired(self, room_id: str, role: str, tag: float) -> None:
        room = self.registry.get(room_id)
        if room is None:
            return
        with room.lock:
            if not self.registry.is_live(room) or not watchdog.is_current(room, role, tag):
                self.logger.info(f"[grace-abort] room={room_id} role={role} stale")
                return
            events = watchdog.expire(room, role)
            self.logger.info(f"[grace-expire] room={room_id} role={role} remaining={room.is_occupied()}")
            if not room.is_occupied() and not room.pending_grace():
                self._delete(room)
            self._dispatch(room.id, None, events)

    # ---- helpers ----

    def _require_room(self, room_id: Any) -> Room:
        rid = normalize_room_id(room_id)
        if not rid:
            raise ValidationError('Room id is required')
        room = self.registry.get(rid)
        if room is None:
            raise NotFoundError('Room does not exist')
        return room

    def _detach_elsewhere(self, identity: Identity, keep: str) -> None:
        """A player occupies one room at a time; leave any other room."""
        for other in self.registry.rooms():
            if other.id == keep:
                continue
            with other.lock:
                if not other.roles_of(identity):
                    continue
                events = rounds.detach(other, identity)
                self.broadcaster.detach(identity, other.id)
                self.logger.info(f"[detach] room={other.id} remaining={other.is_occupied()}")
                if not other.is_occupied():
                    self._delete(other)
                self._dispatch(other.id, identity, events)

    def _delete(self, room: Room) -> None:
        room.reset()
        self.registry.delete(room.id)
        self.logger.info(f"[room-delete] room={room.id}")

    def _dispatch(self, room_id: str, identity: Optional[Identity], events: Iterable[Event]) -> None:
        for event in events:
            if event.target == TO_CALLER:
                if identity is not None:
                    self.broadcaster.to_identity(identity, event.name, event.data)
            else:
                self.broadcaster.to_room(room_id, event.name, event.data)

    def _reject(self, identity: Identity, exc: GameError) -> None:
        self.logger.debug(f"[reject] event={exc.event} message={exc.message}")
        self.broadcaster.to_identity(identity, exc.event, exc.to_payload())
