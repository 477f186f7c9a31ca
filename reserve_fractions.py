"""Exact rational quantities and their human-readable rendering.

All stock and dosage quantities are ``fractions.Fraction`` values. This module
builds them from user input and persisted data (never from floats), offers the
handful of arithmetic helpers the engine exposes, and renders them either as
mixed numbers with unicode fraction glyphs (``1½``) or as plain decimals.
"""
import re
from fractions import Fraction
from typing import Dict, List, Union

from reserve_errors import InvalidFraction

ZERO = Fraction(0)

# Vulgar-fraction glyphs available in unicode, keyed by their value.
GLYPHS: Dict[Fraction, str] = {
    Fraction(1, 2): "½",
    Fraction(1, 3): "⅓",
    Fraction(2, 3): "⅔",
    Fraction(1, 4): "¼",
    Fraction(3, 4): "¾",
    Fraction(1, 5): "⅕",
    Fraction(2, 5): "⅖",
    Fraction(3, 5): "⅗",
    Fraction(4, 5): "⅘",
    Fraction(1, 6): "⅙",
    Fraction(5, 6): "⅚",
    Fraction(1, 8): "⅛",
    Fraction(3, 8): "⅜",
    Fraction(5, 8): "⅝",
    Fraction(7, 8): "⅞",
}
GLYPH_VALUES: Dict[str, Fraction] = {glyph: value for value, glyph in GLYPHS.items()}

_GLYPH_CLASS = "".join(GLYPH_VALUES)
_GLYPH_RE = re.compile(rf"^(?P<sign>[-+]?)\s*(?P<whole>\d+)?\s*(?P<glyph>[{_GLYPH_CLASS}])$")
_MIXED_RE = re.compile(r"^(?P<sign>[-+]?)(?P<whole>\d+)\s+(?P<num>\d+)\s*/\s*(?P<den>\d+)$")
_SIMPLE_RE = re.compile(r"^(?P<num>[-+]?\d+)\s*/\s*(?P<den>[-+]?\d+)$")
_DECIMAL_RE = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)$")


def make_rational(numerator: int, denominator: int = 1) -> Fraction:
    """Build a reduced fraction from two integers.

    Raises InvalidFraction for a zero denominator or non-integer parts.
    """
    for part in (numerator, denominator):
        if isinstance(part, bool) or not isinstance(part, int):
            raise InvalidFraction(f"fraction parts must be integers, got {part!r}")
    if denominator == 0:
        raise InvalidFraction(f"zero denominator in {numerator}/{denominator}")
    return Fraction(numerator, denominator)


def parse_rational(value: Union[Fraction, int, str, List[int]]) -> Fraction:
    """Parse user input or persisted data into an exact fraction.

    Accepted forms: Fraction, int, ``[numerator, denominator]``, and strings
    such as ``"3"``, ``"-1/2"``, ``"1.25"``, ``"1 1/2"``, ``"1½"`` or ``"¾"``.
    Floats are refused so that no binary rounding error can sneak in.
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidFraction(f"refusing to build a fraction from {value!r}")
    if isinstance(value, int):
        return Fraction(value)
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise InvalidFraction(f"expected [numerator, denominator], got {value!r}")
        return make_rational(value[0], value[1])
    if not isinstance(value, str):
        raise InvalidFraction(f"cannot interpret {value!r} as a fraction")

    text = value.strip()
    if not text:
        raise InvalidFraction("empty value")
    try:
        return _parse_text(text)
    except InvalidFraction:
        raise
    except ValueError as e:
        # int() refuses digit strings beyond the interpreter's conversion limit.
        raise InvalidFraction(f"cannot interpret {text[:40]!r} as a fraction") from e


def _parse_text(text: str) -> Fraction:
    match = _GLYPH_RE.match(text)
    if match:
        whole = int(match.group("whole") or 0)
        magnitude = whole + GLYPH_VALUES[match.group("glyph")]
        return -magnitude if match.group("sign") == "-" else magnitude

    match = _MIXED_RE.match(text)
    if match:
        magnitude = int(match.group("whole")) + make_rational(int(match.group("num")), int(match.group("den")))
        return -magnitude if match.group("sign") == "-" else magnitude

    match = _SIMPLE_RE.match(text)
    if match:
        return make_rational(int(match.group("num")), int(match.group("den")))

    if _DECIMAL_RE.match(text):
        # Fraction parses decimal strings exactly.
        return Fraction(text)

    raise InvalidFraction(f"cannot interpret {text[:40]!r} as a fraction")


def add(a: Fraction, b: Fraction) -> Fraction:
    return a + b


def sub(a: Fraction, b: Fraction) -> Fraction:
    return a - b


def scale_by_integer(a: Fraction, n: int) -> Fraction:
    """Multiply by a whole number (e.g. a count of days)."""
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"scale factor must be an integer, got {n!r}")
    return a * n


def compare(a: Fraction, b: Fraction) -> int:
    """Return -1, 0 or 1 like a classic three-way comparison."""
    return (a > b) - (a < b)


def is_zero(a: Fraction) -> bool:
    return a == 0


def to_decimal_approx(a: Fraction) -> float:
    """Float approximation for display only; never feed it back into arithmetic."""
    return float(a)


def rational_to_json(a: Fraction) -> List[int]:
    return [a.numerator, a.denominator]


def rational_from_json(value) -> Fraction:
    return parse_rational(value)


def format_fraction(a: Fraction) -> str:
    """Render a fraction as an integer, a mixed number with a glyph, or ``n/d``.

    Examples: ``3``, ``1½``, ``¾``, ``2 3/7``, ``-1¼``.
    """
    a = Fraction(a)
    if a.denominator == 1:
        return str(a.numerator)

    sign = "-" if a < 0 else ""
    magnitude = abs(a)
    whole, rest = divmod(magnitude.numerator, magnitude.denominator)
    remainder = Fraction(rest, magnitude.denominator)

    glyph = GLYPHS.get(remainder)
    if glyph is not None:
        body = f"{whole}{glyph}" if whole else glyph
    elif whole:
        body = f"{whole} {remainder.numerator}/{remainder.denominator}"
    else:
        body = f"{remainder.numerator}/{remainder.denominator}"
    return sign + body


def _terminating_places(denominator: int):
    """Decimal places needed to write 1/denominator exactly, or None if it repeats."""
    twos = fives = 0
    while denominator % 2 == 0:
        denominator //= 2
        twos += 1
    while denominator % 5 == 0:
        denominator //= 5
        fives += 1
    if denominator != 1:
        return None
    return max(twos, fives)


def format_decimal(a: Fraction, places: int = 2) -> str:
    """Plain decimal rendering.

    Terminating decimals are written exactly; repeating ones are rounded
    half-to-even to ``places`` digits. Trailing zeros are dropped.
    """
    a = Fraction(a)
    exact = _terminating_places(a.denominator)
    digits = exact if exact is not None else places

    scaled = round(a * 10 ** digits)
    if scaled == 0:
        return "0"
    sign = "-" if scaled < 0 else ""
    whole, frac = divmod(abs(scaled), 10 ** digits)
    frac_text = str(frac).rjust(digits, "0").rstrip("0") if digits else ""
    if frac_text:
        return f"{sign}{whole}.{frac_text}"
    return f"{sign}{whole}"
