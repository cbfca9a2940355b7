"""
Human-friendly order numbers: B2S- followed by five characters.

The alphabet drops 0/O, 1/I/L so numbers survive being read over the phone.
"""

import re
import secrets
import time
from typing import Callable

PREFIX = "B2S-"
ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"
CODE_LENGTH = 5
MAX_ATTEMPTS = 10

ORDER_NUMBER_PATTERN = re.compile(rf"^{PREFIX}[{ALPHABET}]{{5,7}}$")


def _random_code(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_order_number(is_taken: Callable[[str], bool]) -> str:
    """
    Return an order number that is_taken() reports as free.

    After MAX_ATTEMPTS collisions fall back to three random characters plus the
    last four digits of the millisecond clock.
    """
    for _ in range(MAX_ATTEMPTS):
        candidate = f"{PREFIX}{_random_code(CODE_LENGTH)}"
        if not is_taken(candidate):
            return candidate
    return f"{PREFIX}{_random_code(3)}{str(int(time.time() * 1000))[-4:]}"


def is_valid_order_number(value: str) -> bool:
    return bool(value) and bool(ORDER_NUMBER_PATTERN.match(value))
