"""Phone number normalization and user lookup.

Chat transports hand us numbers in inconsistent formats ("+55 (11) 98765-4321",
"551187654321", "11987654321"). Numbers are stored as country code + area
code + 9-digit mobile, e.g. 5511987654321.
"""

import re

from loguru import logger
from pydantic import BaseModel

from pocketledger.db.repository import UserRepository
from pocketledger.models.schemas import User, UserContext


def digits_only(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def format_to_standard(phone: str, country_code: str = "55") -> str:
    digits = digits_only(phone)
    cc = len(country_code)

    if len(digits) == cc + 11 and digits.startswith(country_code):
        return digits
    if len(digits) == 11:
        return country_code + digits
    if len(digits) == 10:
        # Missing the leading 9 of the mobile number
        return country_code + digits[:2] + "9" + digits[2:]
    if len(digits) == cc + 10 and digits.startswith(country_code):
        return country_code + digits[cc:cc + 2] + "9" + digits[cc + 2:]
    return digits


def extract_core_number(phone: str) -> str:
    """Last 9 digits (or 8 for short numbers), used for fuzzy matching."""
    digits = digits_only(phone)
    if len(digits) >= 9:
        return digits[-9:]
    if len(digits) >= 8:
        return digits[-8:]
    return digits


def search_patterns(phone: str, country_code: str = "55") -> list[str]:
    formatted = format_to_standard(phone, country_code)
    patterns = [formatted, digits_only(phone), extract_core_number(phone)]
    if formatted.startswith(country_code):
        patterns.append(formatted[len(country_code):])

    unique = []
    for pattern in patterns:
        if pattern and pattern not in unique:
            unique.append(pattern)
    return unique


class AuthResult(BaseModel):
    status: str  # "ok" | "unknown" | "inactive"
    user: UserContext | None = None


class PhoneDirectory:
    def __init__(self, users: UserRepository, country_code: str = "55"):
        self.users = users
        self.country_code = country_code

    def find(self, phone: str) -> User | None:
        """Exact match, then normalized match, then substring patterns."""
        user = self.users.find_by_phone(phone)
        if user is not None:
            return user

        formatted = format_to_standard(phone, self.country_code)
        if formatted and formatted != phone:
            user = self.users.find_by_phone(formatted)
            if user is not None:
                return user

        for pattern in search_patterns(phone, self.country_code):
            user = self.users.find_by_phone_substring(pattern)
            if user is not None:
                logger.debug("Matched {} to user #{} via pattern {}", phone, user.id, pattern)
                return user
        return None

    def authenticate(self, phone: str) -> AuthResult:
        user = self.find(phone)
        if user is None:
            return AuthResult(status="unknown")
        if not user.is_active:
            return AuthResult(status="inactive")
        return AuthResult(
            status="ok",
            user=UserContext(
                user_id=user.id,
                phone=user.phone or format_to_standard(phone, self.country_code),
                display_name=user.display_name,
            ),
        )
