"""
Tests for approval band selection.
"""

from decimal import Decimal

import pytest

from vendorspend.services.approval_service import lowest_band_ceiling, resolve_approval_level
from tests.factories import ApprovalLevelFactory


@pytest.fixture
def levels():
    return [
        ApprovalLevelFactory(level_sequence=1, min_amount=Decimal("0"), max_amount=Decimal("1000"),
                             required_role="AP Manager"),
        ApprovalLevelFactory(level_sequence=2, min_amount=Decimal("1001"), max_amount=Decimal("10000"),
                             required_role="Finance Director"),
        ApprovalLevelFactory(level_sequence=3, min_amount=Decimal("10001"), max_amount=None,
                             required_role="CFO"),
    ]


class TestResolveApprovalLevel:

    @pytest.mark.parametrize(
        "amount, sequence",
        [
            (Decimal("0"), 1),
            (Decimal("1000"), 1),
            (Decimal("1001"), 2),
            (Decimal("10000"), 2),
            (Decimal("15000"), 3),
        ],
    )
    def test_band_for_amount(self, levels, amount, sequence):
        assert resolve_approval_level(levels, amount).level_sequence == sequence

    def test_amount_in_gap_goes_to_highest_reached_level(self, levels):
        assert resolve_approval_level(levels, Decimal("1000.50")).level_sequence == 1
        assert resolve_approval_level(levels, Decimal("10000.50")).level_sequence == 2

    def test_overlapping_bands_prefer_higher_sequence(self):
        overlapping = [
            ApprovalLevelFactory(level_sequence=1, min_amount=Decimal("0"), max_amount=Decimal("5000")),
            ApprovalLevelFactory(level_sequence=2, min_amount=Decimal("2000"), max_amount=Decimal("9000")),
        ]
        assert resolve_approval_level(overlapping, Decimal("3000")).level_sequence == 2

    def test_inactive_levels_are_ignored(self, levels):
        levels[2].is_active = False
        assert resolve_approval_level(levels, Decimal("15000")).level_sequence == 2

    def test_amount_below_every_band(self):
        only = [ApprovalLevelFactory(level_sequence=1, min_amount=Decimal("500"))]
        assert resolve_approval_level(only, Decimal("10")) is None


class TestLowestBandCeiling:

    def test_ceiling_of_lowest_sequence(self, levels):
        assert lowest_band_ceiling(list(reversed(levels))) == Decimal("1000")

    def test_unbounded_lowest_band(self):
        assert lowest_band_ceiling([ApprovalLevelFactory(level_sequence=1, max_amount=None)]) is None

    def test_no_levels(self):
        assert lowest_band_ceiling([]) is None
