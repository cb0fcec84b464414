"""Payoff board generation.

A board is 3x3; each cell holds ``a`` (row chooser payoff) and ``b``
(column chooser payoff), both in [-60, 60]. In fair mode boards are drawn
by reject-sampling: many candidates are scored, the ones breaking the hard
mean/spread limits are dropped, and the lowest score wins.
"""

import random
import statistics
from dataclasses import dataclass
from typing import Dict, List, Optional

from matrixgame.models import BOARD_SIZE, PAYOFF_MAX, PAYOFF_MIN, Board
from .rubber_band import role_biases


@dataclass
class FairnessSettings:
    enabled: bool = True
    rubber_band: bool = True
    candidates: int = 220
    mean_limit: float = 12
    spread_limit: float = 90
    extreme_start: int = 45
    max_bias: int = 6
    bias_step: float = 25
    w_std: float = 1.2
    w_mean: float = 1.2
    w_spread: float = 0.15
    w_extreme: float = 1.0
    w_dominance: float = 1.1
    w_catastrophic: float = 0.6
    extreme_rate: float = 0.6
    dominance_tolerance: float = 5
    catastrophic_threshold: float = 12

    @classmethod
    def from_config(cls, config) -> 'FairnessSettings':
        return cls(
            enabled=bool(config.get('FAIR_MODE', True)),
            rubber_band=bool(config.get('RUBBER_BAND', True)),
            candidates=int(config.get('FAIR_CANDIDATES', 220)),
            mean_limit=float(config.get('FAIR_MEAN_LIMIT', 12)),
            spread_limit=float(config.get('FAIR_SPREAD_LIMIT', 90)),
            extreme_start=int(config.get('FAIR_EXTREME_START', 45)),
            max_bias=int(config.get('FAIR_MAX_BIAS', 6)),
            bias_step=float(config.get('FAIR_BIAS_STEP', 25)),
            w_std=float(config.get('FAIR_W_STD', 1.2)),
            w_mean=float(config.get('FAIR_W_MEAN', 1.2)),
            w_spread=float(config.get('FAIR_W_SPREAD', 0.15)),
            w_extreme=float(config.get('FAIR_W_EXTREME', 1.0)),
            w_dominance=float(config.get('FAIR_W_DOMINANCE', 1.1)),
            w_catastrophic=float(config.get('FAIR_W_CATASTROPHIC', 0.6)),
            extreme_rate=float(config.get('FAIR_EXTREME_RATE', 0.6)),
            dominance_tolerance=float(config.get('FAIR_DOMINANCE_TOLERANCE', 5)),
            catastrophic_threshold=float(config.get('FAIR_CATASTROPHIC_THRESHOLD', 12)),
        )


@dataclass
class BoardScore:
    score: float
    row_sums: List[int]
    col_sums: List[int]
    mean_a: float
    mean_b: float
    spread_a: int
    spread_b: int
    guarantee_a: int
    guarantee_b: int

    def within_limits(self, settings: FairnessSettings) -> bool:
        if abs(self.mean_a) > settings.mean_limit or abs(self.mean_b) > settings.mean_limit:
            return False
        return self.spread_a <= settings.spread_limit and self.spread_b <= settings.spread_limit

    def to_dict(self) -> Dict[str, object]:
        return {
            'score': round(self.score, 3),
            'rowSumA': self.row_sums,
            'colSumB': self.col_sums,
            'meanA': round(self.mean_a, 3),
            'meanB': round(self.mean_b, 3),
            'spreadA': self.spread_a,
            'spreadB': self.spread_b,
            'guaranteeA': self.guarantee_a,
            'guaranteeB': self.guarantee_b,
        }


def clamp_payoff(value: int) -> int:
    return max(PAYOFF_MIN, min(PAYOFF_MAX, value))


def score_board(board: Board, settings: FairnessSettings) -> BoardScore:
    """Rate a board; lower is fairer."""
    rows = range(BOARD_SIZE)
    row_sums = [sum(board[r][c]['a'] for c in rows) for r in rows]
    col_sums = [sum(board[r][c]['b'] for r in rows) for c in rows]
    # Worst case for each pure strategy, assuming an adversarial opponent
    row_worst = [min(board[r][c]['a'] for c in rows) for r in rows]
    col_worst = [min(board[r][c]['b'] for r in rows) for c in rows]

    extreme = 0.0
    for row in board:
        for cell in row:
            for value in (cell['a'], cell['b']):
                extreme += max(0, abs(value) - settings.extreme_start) * settings.extreme_rate

    mean_a = statistics.mean(row_sums)
    mean_b = statistics.mean(col_sums)
    spread_a = max(row_sums) - min(row_sums)
    spread_b = max(col_sums) - min(col_sums)

    guarantee_a = max(row_worst)
    guarantee_b = max(col_worst)
    tolerance = settings.dominance_tolerance
    dominance = max(0, abs(guarantee_a) - tolerance) + max(0, abs(guarantee_b) - tolerance)

    threshold = settings.catastrophic_threshold
    catastrophic = sum(max(0, -v - threshold) for v in row_worst) + sum(max(0, -v - threshold) for v in col_worst)

    score = (
        settings.w_std * (statistics.pstdev(row_sums) + statistics.pstdev(col_sums))
        + settings.w_mean * (abs(mean_a) + abs(mean_b))
        + settings.w_spread * (spread_a + spread_b)
        + settings.w_extreme * extreme
        + settings.w_dominance * dominance
        + settings.w_catastrophic * catastrophic
    )
    return BoardScore(
        score=score,
        row_sums=row_sums,
        col_sums=col_sums,
        mean_a=mean_a,
        mean_b=mean_b,
        spread_a=spread_a,
        spread_b=spread_b,
        guarantee_a=guarantee_a,
        guarantee_b=guarantee_b,
    )


class BoardGenerator:
    def __init__(self, settings: Optional[FairnessSettings] = None, rng: Optional[random.Random] = None) -> None:
        self.settings = settings or FairnessSettings()
        self.rng = rng or random.Random()

    def random_board(self, bias_a: int = 0, bias_b: int = 0) -> Board:
        rand = self.rng.randint
        return [
            [
                {
                    'a': clamp_payoff(rand(PAYOFF_MIN, PAYOFF_MAX) + bias_a),
                    'b': clamp_payoff(rand(PAYOFF_MIN, PAYOFF_MAX) + bias_b),
                }
                for _ in range(BOARD_SIZE)
            ]
            for _ in range(BOARD_SIZE)
        ]

    def generate(self, scores: Optional[Dict[str, int]] = None) -> Board:
        """Return the next board, rubber-banded against ``scores`` if given."""
        settings = self.settings
        if not settings.enabled:
            return self.random_board()

        bias_a, bias_b = role_biases(scores, settings)
        count = max(1, settings.candidates)

        best, best_score = None, None
        for _ in range(count):
            board = self.random_board(bias_a, bias_b)
            rated = score_board(board, settings)
            if not rated.within_limits(settings):
                continue
            if best is None or rated.score < best_score:
                best, best_score = board, rated.score

        if best is None:
            # No candidate met the hard limits; keep the best regardless
            for _ in range(count):
                board = self.random_board(bias_a, bias_b)
                rated = score_board(board, settings)
                if best is None or rated.score < best_score:
                    best, best_score = board, rated.score
        return best
