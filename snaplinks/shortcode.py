"""Short code generation utilities."""

import secrets
import string
from typing import Optional


class ShortCodeGenerator:
    """Generate short public codes for uploaded assets.

    Codes come from a cryptographic random source and never depend on the
    asset's content, so a code reveals nothing about the image behind it.
    """

    # Base62 characters (alphanumeric, case-sensitive)
    BASE62_CHARS = string.ascii_letters + string.digits  # a-zA-Z0-9

    MIN_LENGTH = 6
    MAX_LENGTH = 8

    def __init__(self, default_length: int = 8):
        """Initialize short code generator.

        Args:
            default_length: Default length for generated codes (6-8)
        """
        if not self.MIN_LENGTH <= default_length <= self.MAX_LENGTH:
            raise ValueError(
                f"Short code length must be between {self.MIN_LENGTH} and {self.MAX_LENGTH}"
            )
        self.default_length = default_length

    def generate(self, length: Optional[int] = None) -> str:
        """Generate a random short code.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Random short code
        """
        length = length or self.default_length
        return ''.join(secrets.choice(self.BASE62_CHARS) for _ in range(length))

    def code_space(self, length: Optional[int] = None) -> int:
        """Number of distinct codes available at the given length."""
        return len(self.BASE62_CHARS) ** (length or self.default_length)

    @classmethod
    def is_valid_format(cls, code) -> bool:
        """Check if code could have been produced by a generator.

        Args:
            code: Code to validate

        Returns:
            True if the code is a 6-8 character base62 string
        """
        if not isinstance(code, str):
            return False
        if not cls.MIN_LENGTH <= len(code) <= cls.MAX_LENGTH:
            return False
        return all(c in cls.BASE62_CHARS for c in code)
