"""Password strength policy for SecureShop.

Every rule is evaluated and every violation reported, in a fixed order, so a
client can show all problems at once:

1. shorter than min_length (default PASSWORD_MIN_LENGTH, 10)
2. longer than max_length (128)
3. no uppercase letter
4. no lowercase letter
5. no digit
6. no punctuation or symbol
7. contains a blocklisted common password (case-insensitive substring)
8. three strictly ascending or descending adjacent characters ("123", "cba")
9. three or more identical adjacent characters ("aaa")
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from config import settings
from errors import ValidationFailed

MAX_PASSWORD_LENGTH = 128

# Substring blocklist: a password containing any entry is rejected
COMMON_PASSWORDS = (
    "password", "123456", "123456789", "12345678", "12345", "1234567",
    "password123", "qwerty", "abc123", "111111", "123123", "admin",
    "letmein", "welcome", "monkey", "dragon", "master", "sunshine",
    "princess", "football", "password1", "qwerty123", "passw0rd", "admin123",
    "iloveyou", "trustno1", "secureshop",  # Application-specific
)

SEQUENCE_LENGTH = 3
REPEAT_LENGTH = 3


class PasswordPolicy(BaseModel):
    """Password policy configuration."""

    min_length: int = Field(default_factory=lambda: settings.PASSWORD_MIN_LENGTH, ge=1, le=128)
    max_length: int = Field(default=MAX_PASSWORD_LENGTH, ge=16, le=256)
    blocklist: tuple = Field(default=COMMON_PASSWORDS)


def _has_sequence(password: str) -> bool:
    lowered = password.lower()
    for i in range(len(lowered) - SEQUENCE_LENGTH + 1):
        steps = {
            ord(lowered[j + 1]) - ord(lowered[j])
            for j in range(i, i + SEQUENCE_LENGTH - 1)
        }
        if steps == {1} or steps == {-1}:
            return True
    return False


def _has_repeat(password: str) -> bool:
    run = 1
    for previous, current in zip(password, password[1:]):
        run = run + 1 if current == previous else 1
        if run >= REPEAT_LENGTH:
            return True
    return False


def validate_password(
    password: str,
    policy: Optional[PasswordPolicy] = None,
) -> List[str]:
    """Validate password against policy.

    Args:
        password: Password to validate
        policy: Password policy to use (defaults to the configured policy)

    Returns:
        List of validation errors in rule order (empty if valid)
    """
    if policy is None:
        policy = PasswordPolicy()

    errors = []

    if len(password) < policy.min_length:
        errors.append(f"Password must be at least {policy.min_length} characters long")

    if len(password) > policy.max_length:
        errors.append(f"Password must be at most {policy.max_length} characters long")

    if not any(c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter")

    if not any(c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter")

    if not any(c.isdigit() for c in password):
        errors.append("Password must contain at least one digit")

    if not any(not c.isalnum() and not c.isspace() for c in password):
        errors.append("Password must contain at least one special character")

    password_lower = password.lower()
    if any(entry in password_lower for entry in policy.blocklist):
        errors.append("Password contains a commonly used password")

    if _has_sequence(password):
        errors.append("Password must not contain sequential characters (e.g. 123, abc)")

    if _has_repeat(password):
        errors.append("Password must not contain 3 or more repeated characters")

    return errors


def check_password_strength(password: str, policy: Optional[PasswordPolicy] = None) -> None:
    """Check password strength and raise if weak.

    Raises:
        ValidationFailed: With every violation listed under the "password" field
    """
    errors = validate_password(password, policy)
    if errors:
        raise ValidationFailed({"password": errors})
