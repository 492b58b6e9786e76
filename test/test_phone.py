import pytest

from chalicelib.utils.exceptions import InvalidPhoneNumber
from chalicelib.utils.phone import format_phone_number, validate_phone_number, normalize_phone_number


@pytest.mark.parametrize('phone, expected', [
    ('0712345678', '254712345678'),
    ('712345678', '254712345678'),
    ('+254 712 345 678', '254712345678'),
    ('254712345678', '254712345678'),
    ('0110123456', '254110123456'),
])
def test_format_phone_number(phone, expected):
    assert format_phone_number(phone) == expected


def test_format_phone_number_is_idempotent():
    once = format_phone_number('0712-345-678')
    assert format_phone_number(once) == once


def test_format_phone_number_keeps_foreign_digits():
    assert format_phone_number('+44 20 7946 0958') == '442079460958'


def test_validate_phone_number():
    assert validate_phone_number('0712345678')
    assert validate_phone_number('254112345678')
    assert not validate_phone_number('0812345678')
    assert not validate_phone_number('07123')
    assert not validate_phone_number('')


def test_normalize_phone_number_rejects_invalid():
    assert normalize_phone_number('0712 345 678') == '254712345678'
    with pytest.raises(InvalidPhoneNumber):
        normalize_phone_number('12345')
