"""
Domain validation and normalization module.

Names are normalized (trimmed, lowercased) before storage or comparison and
must match ``label(.label)+.tld`` with an alphabetic TLD of two or more
characters. Only ASCII letters, digits, dots and hyphens are accepted, so an
internationalized name such as ``bücher.de`` is rejected.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .enums import ErrorCode
from .exceptions import InvalidFormatError


DOMAIN_PATTERN = re.compile(r"^[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


@dataclass
class DomainValidationError:
    """Structured error information for domain validation failures."""

    code: ErrorCode
    message: str
    details: dict


@dataclass
class DomainValidationResult:
    """Result of domain validation operation."""

    valid: bool
    canonical_domain: Optional[str]
    error: Optional[DomainValidationError]


class DomainValidator:
    """Validates and normalizes domain names for every entry point."""

    def validate(self, raw_domain: Optional[str]) -> DomainValidationResult:
        """
        Validate and normalize a domain string.

        Args:
            raw_domain: The raw domain string to validate

        Returns:
            DomainValidationResult with the canonical form or an error
        """
        if raw_domain is None or not raw_domain.strip():
            return self._invalid(raw_domain, "Domain input is empty")

        # Checked before lowercasing, which can fold some non-ASCII letters to ASCII
        if not raw_domain.strip().isascii():
            return self._invalid(raw_domain, "Domain must contain only ASCII characters")

        canonical = self.normalize(raw_domain)

        if not DOMAIN_PATTERN.match(canonical):
            return self._invalid(raw_domain, "Invalid domain format")

        return DomainValidationResult(valid=True, canonical_domain=canonical, error=None)

    def require_valid(self, raw_domain: Optional[str]) -> str:
        """
        Return the canonical form of a domain or raise.

        Raises:
            InvalidFormatError: If the domain fails validation
        """
        result = self.validate(raw_domain)
        if not result.valid:
            raise InvalidFormatError(
                raw_domain or "",
                details={"reason": result.error.message},
            )
        return result.canonical_domain

    @staticmethod
    def normalize(raw_domain: str) -> str:
        """
        Normalize a name for lookups without validating it.

        Trims and lowercases so lookups match what validate() stored.
        """
        return raw_domain.strip().lower()

    @staticmethod
    def _invalid(raw_domain: Optional[str], message: str) -> DomainValidationResult:
        return DomainValidationResult(
            valid=False,
            canonical_domain=None,
            error=DomainValidationError(
                code=ErrorCode.INVALID_FORMAT,
                message=message,
                details={"raw_input": raw_domain},
            ),
        )
