"""Password policy: baseline identity rules plus a ban on the sequence '123'."""

PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128

FORBIDDEN_SEQUENCE = "123"

MSG_TOO_SHORT = f"Passwords must be at least {PASSWORD_MIN_LEN} characters."
MSG_TOO_LONG = f"Passwords must be at most {PASSWORD_MAX_LEN} characters."
MSG_NON_ALPHANUMERIC = "Passwords must have at least one non alphanumeric character."
MSG_DIGIT = "Passwords must have at least one digit ('0'-'9')."
MSG_LOWER = "Passwords must have at least one lowercase ('a'-'z')."
MSG_UPPER = "Passwords must have at least one uppercase ('A'-'Z')."
MSG_SEQUENCE = "The password cannot contain a numeric sequence like '123'."


def _baseline_errors(password: str) -> list[str]:
    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LEN:
        errors.append(MSG_TOO_SHORT)
    if len(password) > PASSWORD_MAX_LEN:
        errors.append(MSG_TOO_LONG)
    if all(ch.isalnum() for ch in password):
        errors.append(MSG_NON_ALPHANUMERIC)
    if not any("0" <= ch <= "9" for ch in password):
        errors.append(MSG_DIGIT)
    if not any("a" <= ch <= "z" for ch in password):
        errors.append(MSG_LOWER)
    if not any("A" <= ch <= "Z" for ch in password):
        errors.append(MSG_UPPER)
    return errors


def validate_password(password: str) -> list[str]:
    """
    Return every policy violation for password (empty list when acceptable).

    The '123' rule is appended to the baseline rules, never a replacement for them.
    """
    errors = _baseline_errors(password)
    if FORBIDDEN_SEQUENCE in password:
        errors.append(MSG_SEQUENCE)
    return errors
