"""Division classifier."""

from results_engine.schemas.grading import Division
from results_engine.schemas.policy import O_LEVEL_DIVISIONS, DivisionScale


def classify(total_points: int, scale: DivisionScale = O_LEVEL_DIVISIONS) -> Division:
    """Map total points to a division; anything outside every band is division 0."""
    if isinstance(total_points, bool) or not isinstance(total_points, int):
        return Division.ZERO
    for band in scale.bands:
        if band.min_points <= total_points <= band.max_points:
            return band.division
    return Division.ZERO
