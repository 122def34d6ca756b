"""Load number allocation tests."""

from datetime import date

import pytest

from packtrack.utils.numbering import (
    load_number_prefix,
    next_load_number,
    ordinal_to_suffix,
    suffix_to_ordinal,
)


@pytest.mark.unit
class TestSuffixes:

    @pytest.mark.parametrize(
        "suffix, ordinal",
        [("", 0), ("A", 1), ("Z", 26), ("AA", 27), ("AZ", 52), ("BA", 53)],
    )
    def test_round_trip(self, suffix, ordinal):
        assert suffix_to_ordinal(suffix) == ordinal
        assert ordinal_to_suffix(ordinal) == suffix

    def test_non_letters_are_not_suffixes(self):
        assert suffix_to_ordinal("2") is None
        assert suffix_to_ordinal("a") is None
        assert suffix_to_ordinal("A1") is None


@pytest.mark.unit
class TestNextLoadNumber:

    def test_prefix_is_site_code_and_date(self):
        assert load_number_prefix("BV", date(2026, 3, 7)) == "BV260307"

    def test_first_load_of_day_has_no_suffix(self):
        assert next_load_number("BV260307", []) == "BV260307"

    def test_second_and_third_loads(self):
        assert next_load_number("BV260307", ["BV260307"]) == "BV260307A"
        assert next_load_number("BV260307", ["BV260307", "BV260307A"]) == "BV260307B"

    def test_suffix_rolls_over_after_z(self):
        assert next_load_number("BV260307", ["BV260307Z"]) == "BV260307AA"
        assert next_load_number("BV260307", ["BV260307AZ"]) == "BV260307BA"

    def test_continues_after_highest_not_count(self):
        # Deleted loads leave gaps; numbers are never reused below the highest
        assert next_load_number("BV260307", ["BV260307C"]) == "BV260307D"

    def test_ignores_numbers_of_other_sites_sharing_the_prefix(self):
        existing = ["BV260307", "BV2603071", "BV260307X9"]
        assert next_load_number("BV260307", existing) == "BV260307A"
