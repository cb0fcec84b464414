import threading
from typing import Any, Dict, List, Optional, Tuple

ROW_CHOOSER = 'A'
COL_CHOOSER = 'B'
ROLES = (ROW_CHOOSER, COL_CHOOSER)

ROUNDS_PER_GAME = 9
BOARD_SIZE = 3
PAYOFF_MIN = -60
PAYOFF_MAX = 60

# Room states
EMPTY = 'empty'
WAITING = 'waiting'
ACTIVE = 'active'
RESOLVING = 'resolving'
FINISHED = 'finished'

ROOM_ID_ALPHABET = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
ROOM_ID_LENGTH = 6

Board = List[List[Dict[str, int]]]


class Identity:
    """Stable session identity of a seated player, compared by value."""

    __slots__ = ('key',)

    def __init__(self, key: str) -> None:
        self.key = key

    def __eq__(self, other):
        return isinstance(other, Identity) and other.key == self.key

    def __hash__(self):
        return hash(('identity', self.key))

    def __repr__(self):
        return f'Identity({self.key!r})'


def other_role(role: str) -> str:
    return COL_CHOOSER if role == ROW_CHOOSER else ROW_CHOOSER


def normalize_room_id(room_id: Any) -> str:
    return str(room_id or '').strip().upper()


class Room:
    def __init__(self, room_id: str, created_at: float, sequence: int = 0) -> None:
        self.id = room_id
        self.created_at = created_at
        # Tie-breaker for rooms created within the same clock tick
        self.sequence = sequence
        self.seats: Dict[str, Optional[Identity]] = {ROW_CHOOSER: None, COL_CHOOSER: None}
        self.state = EMPTY
        self.round = 0
        self.scores: Dict[str, int] = {ROW_CHOOSER: 0, COL_CHOOSER: 0}
        self.picks: Dict[str, Optional[int]] = {ROW_CHOOSER: None, COL_CHOOSER: None}
        self.board: Optional[Board] = None
        self.offline_since: Dict[str, Optional[float]] = {ROW_CHOOSER: None, COL_CHOOSER: None}
        self.grace_timers: Dict[str, Any] = {ROW_CHOOSER: None, COL_CHOOSER: None}
        self.round_task = None
        self.generation = 0
        self.lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self.state in (ACTIVE, RESOLVING)

    def is_occupied(self) -> bool:
        return any(self.seats.values())

    def is_full(self) -> bool:
        return all(self.seats.values())

    def roles_of(self, identity: Identity) -> List[str]:
        return [role for role in ROLES if self.seats[role] == identity]

    def available_role(self) -> Optional[str]:
        has_a = self.seats[ROW_CHOOSER] is not None
        has_b = self.seats[COL_CHOOSER] is not None
        if has_a and not has_b:
            return COL_CHOOSER
        if has_b and not has_a:
            return ROW_CHOOSER
        return None

    def both_picked(self) -> bool:
        return all(p is not None for p in self.picks.values())

    def pending_grace(self) -> bool:
        return any(t is not None for t in self.offline_since.values())

    def reset_picks(self) -> None:
        self.picks = {ROW_CHOOSER: None, COL_CHOOSER: None}

    def cancel_grace(self, role: str) -> None:
        task = self.grace_timers.get(role)
        if task is not None:
            task.cancel()
        self.grace_timers[role] = None
        self.offline_since[role] = None

    def cancel_round_task(self) -> None:
        if self.round_task is not None:
            self.round_task.cancel()
        self.round_task = None

    def settle_idle_state(self) -> None:
        """Recompute the state of a room that has no game in progress."""
        if self.state in (ACTIVE, RESOLVING, FINISHED):
            return
        self.state = WAITING if self.is_occupied() else EMPTY

    def reset(self) -> None:
        """Drop the current game, its timers and picks; keep the seats."""
        self.end_game()
        for role in ROLES:
            self.cancel_grace(role)

    def end_game(self) -> None:
        """Drop the current game and its round task; open grace windows stay."""
        self.generation += 1
        self.state = WAITING if self.is_occupied() else EMPTY
        self.round = 0
        self.scores = {ROW_CHOOSER: 0, COL_CHOOSER: 0}
        self.reset_picks()
        self.board = None
        self.cancel_round_task()

    def chosen_cell(self) -> Tuple[int, int, Dict[str, int]]:
        row = self.picks[ROW_CHOOSER]
        col = self.picks[COL_CHOOSER]
        return row, col, self.board[row][col]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'roomId': self.id,
            'state': self.state,
            'players': {role: self.seats[role] is not None for role in ROLES},
            'round': self.round,
            'scores': dict(self.scores),
            'picks': dict(self.picks),
            'board': [[dict(cell) for cell in row] for row in self.board] if self.board else None,
            'active': self.active,
        }

    def summary(self) -> Dict[str, Any]:
        return {
            'roomId': self.id,
            'availableTeam': self.available_role(),
            'players': {role: self.seats[role] is not None for role in ROLES},
            'active': self.active,
            'createdAt': int(self.created_at * 1000),
        }
