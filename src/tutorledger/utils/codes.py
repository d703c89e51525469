"""Random token generation for redemption codes."""

import secrets
import string


def generate_code(digits: int, upper: int, lower: int) -> str:
    """Return a shuffled token with the given count of each character class."""

    chars = [secrets.choice(string.digits) for _ in range(digits)]
    chars += [secrets.choice(string.ascii_uppercase) for _ in range(upper)]
    chars += [secrets.choice(string.ascii_lowercase) for _ in range(lower)]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def activation_code() -> str:
    return generate_code(3, 2, 2)


def view_credit_code() -> str:
    return generate_code(5, 2, 2)
