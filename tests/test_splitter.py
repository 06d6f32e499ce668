"""Tests for equal and percentage expense splits, including rounding drift."""

from decimal import Decimal

import pytest

from splitledger.exceptions import SplitValidationError
from splitledger.models import PercentageShare
from splitledger.splitter import split_by_custom_amount, split_equally


def pct(**percentages: str) -> list[PercentageShare]:
    """Build percentage shares from keyword arguments."""
    return [
        PercentageShare(user_id=user_id, percentage=Decimal(value))
        for user_id, value in percentages.items()
    ]


class TestSplitEqually:
    """Equal splits."""

    def test_even_split(self):
        """Amounts that divide evenly produce exact shares."""
        shares = split_equally(Decimal("90"), ["U1", "U2", "U3"])

        assert [(s.user_id, s.amount) for s in shares] == [
            ("U1", Decimal("30.00")),
            ("U2", Decimal("30.00")),
            ("U3", Decimal("30.00")),
        ]

    def test_preserves_input_order(self):
        """One entry per id, in the order given."""
        shares = split_equally(Decimal("10"), ["c", "a", "b"])

        assert [s.user_id for s in shares] == ["c", "a", "b"]

    def test_accepts_float_and_string_amounts(self):
        """Floats and strings convert without binary noise."""
        assert split_equally(0.3, ["a", "b", "c"])[0].amount == Decimal("0.10")
        assert split_equally("12.50", ["a", "b"])[0].amount == Decimal("6.25")

    def test_zero_amount(self):
        """A zero amount splits into zero shares."""
        shares = split_equally(Decimal("0"), ["a", "b"])

        assert all(s.amount == Decimal("0.00") for s in shares)

    def test_contract_field_names(self):
        """Shares dump as userId/amount."""
        dumped = split_equally(Decimal("10"), ["a"])[0].model_dump(by_alias=True)

        assert dumped == {"userId": "a", "amount": Decimal("10.00")}


class TestSplitEquallyRounding:
    """Per-share rounding drift is kept, not corrected."""

    def test_under_allocation(self):
        """100 / 3 rounds each share down, leaving a cent unassigned."""
        shares = split_equally(Decimal("100"), ["a", "b", "c"])

        assert all(s.amount == Decimal("33.33") for s in shares)
        assert sum(s.amount for s in shares) == Decimal("99.99")

    def test_over_allocation(self):
        """Half-cent shares round up, exceeding the amount."""
        shares = split_equally(Decimal("0.05"), ["a", "b"])

        assert all(s.amount == Decimal("0.03") for s in shares)
        assert sum(s.amount for s in shares) == Decimal("0.06")

    @pytest.mark.parametrize(
        "amount,count",
        [("10.00", 3), ("0.01", 7), ("1234.56", 9), ("99.99", 11), ("5", 6)],
    )
    def test_drift_within_one_cent_per_participant(self, amount, count):
        """Shares are equal, non-negative and within 0.01 * n of the amount."""
        ids = [f"u{i}" for i in range(count)]

        shares = split_equally(Decimal(amount), ids)

        assert len(shares) == count
        assert len({s.amount for s in shares}) == 1
        assert all(s.amount >= 0 for s in shares)
        drift = abs(sum(s.amount for s in shares) - Decimal(amount))
        assert drift <= Decimal("0.01") * count


class TestSplitEquallyValidation:
    """Invalid inputs raise instead of producing NaN or Infinity."""

    def test_no_participants(self):
        """Splitting among nobody is an error."""
        with pytest.raises(SplitValidationError, match="zero participants"):
            split_equally(Decimal("10"), [])

    def test_negative_amount(self):
        """Negative amounts are rejected."""
        with pytest.raises(SplitValidationError, match="negative"):
            split_equally(Decimal("-10"), ["a"])

    @pytest.mark.parametrize("amount", [Decimal("NaN"), Decimal("Infinity"), float("inf")])
    def test_non_finite_amount(self, amount):
        """NaN and infinities are rejected."""
        with pytest.raises(SplitValidationError, match="finite"):
            split_equally(amount, ["a"])

    def test_garbage_amount(self):
        """Strings that aren't numbers are rejected."""
        with pytest.raises(SplitValidationError, match="Not a valid amount"):
            split_equally("ten dollars", ["a"])

    def test_is_a_value_error(self):
        """Callers catching ValueError also catch split failures."""
        with pytest.raises(ValueError):
            split_equally(Decimal("10"), [])


class TestSplitByCustomAmount:
    """Percentage splits."""

    def test_percentages_summing_to_100(self):
        """Percentages that already sum to 100 are used as given."""
        shares = split_by_custom_amount(Decimal("200"), pct(a="25", b="75"))

        assert [(s.user_id, s.amount) for s in shares] == [
            ("a", Decimal("50.00")),
            ("b", Decimal("150.00")),
        ]

    def test_within_tolerance_not_normalized(self):
        """A sum within 0.01 of 100 is not rescaled."""
        shares = split_by_custom_amount(Decimal("100"), pct(a="33.33", b="33.33", c="33.33"))

        assert all(s.amount == Decimal("33.33") for s in shares)

    def test_normalizes_partial_percentages(self):
        """Percentages summing to 50 behave like the same ratios summing to 100."""
        halved = split_by_custom_amount(Decimal("80"), pct(a="10", b="15", c="25"))
        full = split_by_custom_amount(Decimal("80"), pct(a="20", b="30", c="50"))

        assert [s.amount for s in halved] == [s.amount for s in full]
        assert [s.amount for s in full] == [Decimal("16.00"), Decimal("24.00"), Decimal("40.00")]

    def test_normalizes_over_100(self):
        """Percentages summing to more than 100 are scaled down."""
        shares = split_by_custom_amount(Decimal("60"), pct(a="100", b="200"))

        assert [s.amount for s in shares] == [Decimal("20.00"), Decimal("40.00")]

    def test_zero_percentage_participant(self):
        """A participant with 0% gets a zero share."""
        shares = split_by_custom_amount(Decimal("10"), pct(a="100", b="0"))

        assert [s.amount for s in shares] == [Decimal("10.00"), Decimal("0.00")]

    def test_rounding_drift_preserved(self):
        """Equal thirds by percentage leave the same cent of drift."""
        shares = split_by_custom_amount(Decimal("100"), pct(a="1", b="1", c="1"))

        assert all(s.amount == Decimal("33.33") for s in shares)
        assert sum(s.amount for s in shares) == Decimal("99.99")


class TestSplitByCustomAmountValidation:
    """Invalid percentage inputs."""

    def test_zero_total_percentage(self):
        """All-zero percentages can't be normalized."""
        with pytest.raises(SplitValidationError, match="sum to zero"):
            split_by_custom_amount(Decimal("10"), pct(a="0", b="0"))

    def test_negative_percentage(self):
        """Negative percentages are rejected."""
        with pytest.raises(SplitValidationError, match="Invalid percentage"):
            split_by_custom_amount(Decimal("10"), pct(a="150", b="-50"))

    def test_no_participants(self):
        """An empty participant list is rejected."""
        with pytest.raises(SplitValidationError, match="zero participants"):
            split_by_custom_amount(Decimal("10"), [])

    def test_negative_amount(self):
        """Negative amounts are rejected."""
        with pytest.raises(SplitValidationError, match="negative"):
            split_by_custom_amount(Decimal("-1"), pct(a="100"))

    def test_non_finite_amount(self):
        """Infinite amounts are rejected."""
        with pytest.raises(SplitValidationError, match="finite"):
            split_by_custom_amount(Decimal("Infinity"), pct(a="100"))
