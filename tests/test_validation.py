"""Unit tests for fare coercion, amount validation and route distance."""

import math

import pytest

from src.domain.distance import haversine_km, route_distance_km
from src.domain.entities import Coordinates
from src.domain.errors import InvalidInput
from src.domain.validation import coerce_fare, validate_amount


class TestCoerceFare:
    def test_none_is_unset(self):
        assert coerce_fare(None) is None

    @pytest.mark.parametrize("raw,expected", [(120, 120.0), (99.5, 99.5), ("42.25", 42.25), (0, 0.0)])
    def test_numbers_and_numeric_strings(self, raw, expected):
        assert coerce_fare(raw) == expected

    @pytest.mark.parametrize("raw", [-1, "-3.5", math.inf, math.nan, "inf"])
    def test_negative_or_non_finite_is_dropped(self, raw):
        assert coerce_fare(raw) is None

    @pytest.mark.parametrize("raw", [True, False, "cheap", "", [10]])
    def test_non_numeric_is_rejected(self, raw):
        with pytest.raises(InvalidInput):
            coerce_fare(raw)


class TestValidateAmount:
    def test_accepts_zero_and_positive(self):
        assert validate_amount(0) == 0.0
        assert validate_amount(310.5) == 310.5

    @pytest.mark.parametrize("amount", [-0.01, math.inf, math.nan, "100", None, True])
    def test_rejects_invalid(self, amount):
        with pytest.raises(InvalidInput):
            validate_amount(amount)


class TestDistance:
    def test_one_degree_of_longitude_at_equator(self):
        assert haversine_km(0, 0, 0, 1) == pytest.approx(111.19, abs=0.01)

    def test_same_point_is_zero(self):
        assert haversine_km(12.97, 77.59, 12.97, 77.59) == pytest.approx(0.0)

    def test_route_distance_is_rounded(self):
        distance = route_distance_km(Coordinates(0, 0), Coordinates(0, 1))
        assert distance == 111.19

    def test_route_distance_needs_both_ends(self):
        assert route_distance_km(Coordinates(0, 0), None) is None
        assert route_distance_km(None, None) is None
