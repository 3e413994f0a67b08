# marketplace/domain/cards.py
import re

_SEPARATORS = re.compile(r"[\s-]")
_ONLY_DIGITS = re.compile(r"[0-9]+")
_CARD_DIGITS = re.compile(r"[0-9]{13,19}")


def clean_card_number(card_number: str) -> str:
    return _SEPARATORS.sub("", card_number or "")


def is_ascii_digits(value: str) -> bool:
    return bool(_ONLY_DIGITS.fullmatch(value))


def luhn_checksum_ok(digits: str) -> bool:
    total = 0
    double = False
    for ch in reversed(digits):
        digit = int(ch)
        if double:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
        double = not double
    return total % 10 == 0


def is_valid_card_number(card_number: str) -> bool:
    """13-19 digits (spaces and dashes ignored) passing the Luhn check."""
    cleaned = clean_card_number(card_number)
    if not _CARD_DIGITS.fullmatch(cleaned):
        return False
    return luhn_checksum_ok(cleaned)


def mask_card_number(card_number: str) -> str:
    cleaned = clean_card_number(card_number)
    if len(cleaned) < 4:
        return "****"
    return "*" * (len(cleaned) - 4) + cleaned[-4:]
