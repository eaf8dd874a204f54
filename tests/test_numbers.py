import math

import pytest

from hazellua.numbers import (
    ceil_log2,
    fb_to_int,
    hex_value,
    int_to_fb,
    number_to_string,
    str_to_float,
    str_to_integer,
    str_to_number,
)


@pytest.mark.parametrize("x", range(8))
def test_int_to_fb_small_values_are_identity(x):
    assert int_to_fb(x) == x
    assert fb_to_int(x) == x


@pytest.mark.parametrize("x", [8, 9, 15, 16, 17, 100, 1000, 12345, 2**20 + 1, 2**31])
def test_int_to_fb_rounds_up_and_fits_a_byte(x):
    fb = int_to_fb(x)
    assert 0 <= fb <= 255
    assert fb_to_int(fb) >= x


def test_fb_round_trip_for_representable_values():
    for y in range(256):
        value = fb_to_int(y)
        if value < 2**32:
            assert fb_to_int(int_to_fb(value)) == value


def test_int_to_fb_is_monotonic():
    encoded = [fb_to_int(int_to_fb(x)) for x in range(2000)]
    assert encoded == sorted(encoded)


def test_int_to_fb_rejects_negative():
    with pytest.raises(ValueError):
        int_to_fb(-1)


@pytest.mark.parametrize("x", [2, 3, 5, 8, 255, 256, 257, 1000, 65536, 2**31 + 3])
def test_ceil_log2_bounds(x):
    r = ceil_log2(x)
    assert 2 ** (r - 1) < x <= 2**r


def test_ceil_log2_of_one_and_powers():
    assert ceil_log2(1) == 0
    for k in range(1, 32):
        assert ceil_log2(2**k) == k


def test_ceil_log2_rejects_zero():
    with pytest.raises(ValueError):
        ceil_log2(0)


@pytest.mark.parametrize("c", list("0123456789abcdefABCDEF"))
def test_hex_value(c):
    assert hex_value(c) == int(c, 16)


@pytest.mark.parametrize("c", ["g", "", "12", " "])
def test_hex_value_rejects(c):
    with pytest.raises(ValueError):
        hex_value(c)


def test_str_to_integer_decimal_with_spaces_and_sign():
    assert str_to_integer(" 42 ") == 42
    assert str_to_integer("-17") == -17
    assert str_to_integer("+5") == 5


def test_str_to_integer_limits():
    assert str_to_integer("9223372036854775807") == 9223372036854775807
    assert str_to_integer("-9223372036854775808") == -9223372036854775808
    with pytest.raises(ValueError):
        str_to_integer("9223372036854775808")


def test_str_to_integer_hex_wraps():
    assert str_to_integer("0xff") == int("ff", 16)
    assert str_to_integer("0xffffffffffffffff") == -1
    assert str_to_integer("0x10000000000000001") == str_to_integer("0x1")


@pytest.mark.parametrize("s", ["", "  ", "0x", "1.5", "12a", "1 2", "--1"])
def test_str_to_integer_rejects(s):
    with pytest.raises(ValueError):
        str_to_integer(s)


@pytest.mark.parametrize("s", ["1.5", "-2.25", ".5", "3.", "1e10", "1E-3", " 7.0 "])
def test_str_to_float_decimal(s):
    assert str_to_float(s) == float(s)


@pytest.mark.parametrize("s", ["0x1p4", "0x1.8p3", "0x.8", "-0xA.8p-2", "0X1P+1"])
def test_str_to_float_hex(s):
    assert str_to_float(s) == float.fromhex(s)


def test_str_to_float_many_hex_digits():
    digits = "1" * 40
    assert str_to_float("0x" + digits) == pytest.approx(int(digits, 16), rel=1e-12)


def test_str_to_float_overflow_gives_infinity():
    assert str_to_float("1e400") == math.inf
    assert str_to_float("0x1p99999") == math.inf
    assert str_to_float("-0x1p99999") == -math.inf


@pytest.mark.parametrize("s", ["nan", "inf", "-inf", "NaN", "1e", "0x", "0x1p", "1.0x", "1..2", "abc"])
def test_str_to_float_rejects(s):
    with pytest.raises(ValueError):
        str_to_float(s)


def test_str_to_number_prefers_integer():
    result = str_to_number(" 10 ")
    assert result == 10 and isinstance(result, int)
    result = str_to_number("1E2")
    assert result == float("1E2") and isinstance(result, float)


def test_str_to_number_decimal_overflow_becomes_float():
    result = str_to_number("9223372036854775808")
    assert isinstance(result, float)
    assert result == float("9223372036854775808")


def test_str_to_number_rejects():
    with pytest.raises(ValueError):
        str_to_number("hello")


def test_number_to_string_marks_floats():
    assert number_to_string(1.0) == "1.0"
    assert number_to_string(1e100) == "1e+100"


@pytest.mark.parametrize("n", [0, -7, 2**63 - 1, -(2**63)])
def test_integer_string_round_trip(n):
    text = number_to_string(n)
    assert text == str(n)
    assert str_to_integer(text) == n


@pytest.mark.parametrize("v", [0.5, -2.25, 3.0, 1e15, 123456.789, -0.125])
def test_float_string_round_trip(v):
    result = str_to_number(number_to_string(v))
    assert isinstance(result, float)
    assert result == v


def test_number_to_string_rejects_non_numbers():
    with pytest.raises(TypeError):
        number_to_string(True)
    with pytest.raises(TypeError):
        number_to_string("1")