import os
import sys
from fractions import Fraction

import pytest

# Ensure project root is on sys.path so tests can import local modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from reserve_errors import InvalidFraction
from reserve_fractions import (
    add, compare, format_decimal, format_fraction, is_zero, make_rational, parse_rational,
    rational_from_json, rational_to_json, scale_by_integer, sub, to_decimal_approx,
)

SAMPLES = [Fraction(0), Fraction(1, 2), Fraction(-3, 4), Fraction(7, 3), Fraction(10), Fraction(-5, 8)]


def test_make_rational_reduces():
    r = make_rational(6, 8)
    assert (r.numerator, r.denominator) == (3, 4)
    assert make_rational(3, -6) == Fraction(-1, 2)


def test_make_rational_rejects_zero_denominator():
    with pytest.raises(InvalidFraction):
        make_rational(1, 0)


def test_make_rational_rejects_non_integers():
    with pytest.raises(InvalidFraction):
        make_rational(0.5, 1)


@pytest.mark.parametrize("text,expected", [
    ("3", Fraction(3)),
    ("-2", Fraction(-2)),
    ("1/2", Fraction(1, 2)),
    (" 4 / 6 ", Fraction(2, 3)),
    ("1.25", Fraction(5, 4)),
    ("0.1", Fraction(1, 10)),
    ("1 1/2", Fraction(3, 2)),
    ("-1 1/2", Fraction(-3, 2)),
    ("1½", Fraction(3, 2)),
    ("¾", Fraction(3, 4)),
    ("-2⅓", Fraction(-7, 3)),
])
def test_parse_rational_text(text, expected):
    assert parse_rational(text) == expected


@pytest.mark.parametrize("bad", ["", "abc", "1/0", "1/2/3", "1,5", 0.5, True, None, [1, 2, 3]])
def test_parse_rational_rejects(bad):
    with pytest.raises(InvalidFraction):
        parse_rational(bad)


def test_json_pairs_are_exact():
    third = Fraction(1, 3)
    assert rational_to_json(third) == [1, 3]
    assert rational_from_json([1, 3]) == third
    assert rational_from_json([2, 6]) == third
    with pytest.raises(InvalidFraction):
        rational_from_json([1, 0])


def test_add_is_reduced_and_commutative():
    for a in SAMPLES:
        for b in SAMPLES:
            total = add(a, b)
            assert total == add(b, a)
            assert total == Fraction(total.numerator, total.denominator)
            assert total.denominator > 0


def test_helpers():
    assert sub(Fraction(1, 2), Fraction(1, 3)) == Fraction(1, 6)
    assert scale_by_integer(Fraction(1, 2), 7) == Fraction(7, 2)
    assert compare(Fraction(1, 3), Fraction(2, 6)) == 0
    assert compare(Fraction(1, 3), Fraction(1, 2)) == -1
    assert compare(Fraction(1), Fraction(1, 2)) == 1
    assert is_zero(Fraction(0, 5))
    assert not is_zero(Fraction(1, 5))
    assert to_decimal_approx(Fraction(1, 4)) == 0.25


def test_scale_by_integer_refuses_fractional_factor():
    with pytest.raises(TypeError):
        scale_by_integer(Fraction(1, 2), Fraction(1, 2))


@pytest.mark.parametrize("value,expected", [
    (Fraction(0), "0"),
    (Fraction(3), "3"),
    (Fraction(-4), "-4"),
    (Fraction(3, 2), "1½"),
    (Fraction(3, 4), "¾"),
    (Fraction(-5, 4), "-1¼"),
    (Fraction(17, 8), "2⅛"),
    (Fraction(17, 7), "2 3/7"),
    (Fraction(2, 7), "2/7"),
    (Fraction(-2, 7), "-2/7"),
])
def test_format_fraction(value, expected):
    assert format_fraction(value) == expected


def test_format_fraction_is_total():
    for numerator in range(-30, 31):
        for denominator in range(1, 13):
            assert format_fraction(Fraction(numerator, denominator))


@pytest.mark.parametrize("value,expected", [
    (Fraction(5), "5"),
    (Fraction(3, 2), "1.5"),
    (Fraction(-1, 8), "-0.125"),
    (Fraction(1, 1000), "0.001"),
    (Fraction(1, 3), "0.33"),
    (Fraction(2, 3), "0.67"),
    (Fraction(1, 300), "0"),
])
def test_format_decimal(value, expected):
    assert format_decimal(value) == expected


@pytest.mark.parametrize("text", [
    "1" * 5000,
    "1/" + "3" * 5000,
    "2 1/" + "3" * 5000,
    "0." + "1" * 5000,
    "²",
])
def test_parse_rational_rejects_unconvertible_digits(text):
    # digit strings longer than int()'s conversion limit must not leak a bare ValueError
    with pytest.raises(InvalidFraction):
        parse_rational(text)
