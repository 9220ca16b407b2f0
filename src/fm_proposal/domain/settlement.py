"""Winner selection from per-outcome TWAPs."""

from collections.abc import Sequence

from src.fm_common.errors import InternalError


def select_winner(twaps: Sequence[int]) -> int:
    """Index of the highest TWAP; ties resolve to the lowest index.

    Outcome 0 is the status quo, so an exact tie never changes policy.
    """
    if not twaps:
        raise InternalError("no TWAPs to settle")
    winner = 0
    for i, twap in enumerate(twaps):
        if twap > twaps[winner]:
            winner = i
    return winner
