"""Tests for TWAP-based winner selection."""

import pytest

from src.fm_common.errors import InternalError
from src.fm_proposal.domain.settlement import select_winner


class TestSelectWinner:
    @pytest.mark.parametrize(
        "twaps, winner",
        [
            ([100, 200], 1),
            ([300, 200, 250], 0),
            ([5, 9, 9, 1], 1),
            ([7, 7], 0),
            ([42], 0),
        ],
    )
    def test_highest_twap_lowest_index_on_tie(self, twaps: list[int], winner: int) -> None:
        assert select_winner(twaps) == winner

    def test_empty(self) -> None:
        with pytest.raises(InternalError):
            select_winner([])
