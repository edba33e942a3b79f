# fasttrack/shared/utils/input_validation.py

import re
from typing import Optional, Tuple


class InputValidator:
    """
    Validation and sanitization of candidate input,
    complementing the Pydantic validations.
    """

    # Length limits
    MAX_NAME_LENGTH = 255
    MAX_EMAIL_LENGTH = 255
    MAX_PHONE_LENGTH = 50
    MAX_FILENAME_LENGTH = 255

    # Letters (accented included), digits, spaces, hyphens, apostrophes, dots, ampersands
    NAME_PATTERN = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ0-9\s\-'.&,()]+$")
    EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
    # Digits with optional leading +, spaces, dots, dashes, parentheses
    PHONE_PATTERN = re.compile(r"^\+?[0-9\s.\-()]{6,}$")
    # Potentially dangerous characters in common input
    DANGEROUS_CHARS = re.compile(r"[<>\";%{}\[\]]")

    @classmethod
    def validate_name(cls, name: str) -> Tuple[bool, Optional[str]]:
        """
        Validate a company or person name.

        Returns:
            Tuple (valid, error_message)
        """
        if not name or not name.strip():
            return False, "can't be blank"

        if len(name) > cls.MAX_NAME_LENGTH:
            return False, f"is too long (maximum {cls.MAX_NAME_LENGTH} characters)"

        if cls.DANGEROUS_CHARS.search(name):
            return False, "contains characters that are not allowed"

        if not cls.NAME_PATTERN.match(name):
            return False, "contains invalid characters"

        return True, None

    @classmethod
    def validate_email(cls, email: str) -> Tuple[bool, Optional[str]]:
        if not email:
            return False, "can't be blank"

        if len(email) > cls.MAX_EMAIL_LENGTH:
            return False, f"is too long (maximum {cls.MAX_EMAIL_LENGTH} characters)"

        if not cls.EMAIL_PATTERN.match(email):
            return False, "is not a valid email address"

        return True, None

    @classmethod
    def validate_phone(cls, phone: str) -> Tuple[bool, Optional[str]]:
        if len(phone) > cls.MAX_PHONE_LENGTH:
            return False, f"is too long (maximum {cls.MAX_PHONE_LENGTH} characters)"

        if not cls.PHONE_PATTERN.match(phone):
            return False, "is not a valid phone number"

        return True, None

    @classmethod
    def sanitize_string(cls, text: str, max_length: Optional[int] = None) -> str:
        """
        Collapse whitespace and truncate.
        """
        sanitized = re.sub(r"\s+", " ", (text or "").strip())
        if max_length and len(sanitized) > max_length:
            sanitized = sanitized[:max_length]
        return sanitized

    @classmethod
    def sanitize_filename(cls, filename: str) -> str:
        """Keep the base name only and drop path separators and control characters."""
        base = re.split(r"[\\/]", filename or "")[-1]
        base = re.sub(r"[\x00-\x1f]", "", base).strip()
        return base[: cls.MAX_FILENAME_LENGTH] or "document"
