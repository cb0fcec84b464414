import math
from typing import Dict, Optional, Tuple

from matrixgame.models import COL_CHOOSER, ROW_CHOOSER


def bias_from_diff(diff: float, step: float, max_bias: int) -> int:
    """Map a score differential to a signed bias magnitude.

    Positive when the row chooser leads. Rounds half up and clamps to
    ``[-max_bias, max_bias]``.
    """
    if step <= 0:
        return 0
    bias = math.floor(diff / step + 0.5)
    return max(-max_bias, min(max_bias, bias))


def role_biases(scores: Optional[Dict[str, int]], settings) -> Tuple[int, int]:
    """Return the (A, B) value shifts for the next board.

    The leader is shifted down and the trailer up by the same amount.
    """
    if not scores or not settings.enabled or not settings.rubber_band:
        return 0, 0
    diff = (scores.get(ROW_CHOOSER) or 0) - (scores.get(COL_CHOOSER) or 0)
    bias = bias_from_diff(diff, settings.bias_step, settings.max_bias)
    return -bias, bias
