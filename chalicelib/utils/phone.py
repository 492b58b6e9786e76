import re

from chalicelib.utils.exceptions import InvalidPhoneNumber

KENYAN_PHONE_PATTERN = re.compile(r'254[71]\d{8}')


def format_phone_number(phone: str) -> str:
    """
    Brings a Kenyan phone number to the international format used by M-Pesa
    0712345678 -> 254712345678, 712345678 -> 254712345678
    Numbers that do not look Kenyan are returned with non-digits stripped
    """
    cleaned = re.sub(r'\D', '', phone or '')
    if cleaned.startswith('254'):
        return cleaned
    if cleaned.startswith('0'):
        return f'254{cleaned[1:]}'
    if cleaned.startswith(('7', '1')):
        return f'254{cleaned}'
    return cleaned


def validate_phone_number(phone: str) -> bool:
    return KENYAN_PHONE_PATTERN.fullmatch(format_phone_number(phone)) is not None


def normalize_phone_number(phone: str) -> str:
    formatted = format_phone_number(phone)
    if KENYAN_PHONE_PATTERN.fullmatch(formatted) is None:
        raise InvalidPhoneNumber(f'Phone number {phone!r} is not a valid Kenyan mobile number')
    return formatted
