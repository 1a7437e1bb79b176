def is_valid_luhn(number: str) -> bool:
    """Return True when ``number`` is a non-empty digit string passing mod-10."""
    if not number or not number.isascii() or not number.isdigit():
        return False

    total = 0
    parity = len(number) % 2
    for idx, char in enumerate(number):
        digit = int(char)
        if idx % 2 == parity:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0
