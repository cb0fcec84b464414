"""Game domain services: boards, rounds, rooms and timers.

This package contains pure(ish) domain logic that is driven by the socket
handlers and HTTP routes, keeping transport concerns separated from core
game mechanics.
"""

from .boards import BoardGenerator, BoardScore, FairnessSettings, score_board
from .coordinator import GameCoordinator
from .registry import RoomRegistry, generate_room_id
from .rubber_band import bias_from_diff, role_biases
from .scheduler import BackgroundScheduler, ManualScheduler, ScheduledTask

__all__ = [
    'BackgroundScheduler',
    'BoardGenerator',
    'BoardScore',
    'FairnessSettings',
    'GameCoordinator',
    'ManualScheduler',
    'RoomRegistry',
    'ScheduledTask',
    'bias_from_diff',
    'generate_room_id',
    'role_biases',
    'score_board',
]
