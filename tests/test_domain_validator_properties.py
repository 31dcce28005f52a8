"""
Property-based tests for domain validation module.

Uses Hypothesis for property-based testing of normalization and of the
syntax check shared by every entry point.
"""

import string

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from nawala_checker.domain_validator import DomainValidator
from nawala_checker.enums import ErrorCode
from nawala_checker.exceptions import InvalidFormatError


def valid_ascii_label() -> st.SearchStrategy[str]:
    """Generate ASCII labels that start and end with an alphanumeric."""
    alphanumeric = st.sampled_from(string.ascii_lowercase + string.digits)
    return st.one_of(
        alphanumeric,
        st.builds(
            lambda first, middle, last: first + middle + last,
            alphanumeric,
            st.text(alphabet=string.ascii_lowercase + string.digits + "-", max_size=10),
            alphanumeric,
        ),
    )


def valid_ascii_domain() -> st.SearchStrategy[str]:
    """Generate valid ASCII domain names, optionally with subdomains."""
    return st.builds(
        lambda labels, tld: ".".join(labels + [tld]),
        st.lists(valid_ascii_label(), min_size=1, max_size=3),
        st.sampled_from(["com", "id", "net", "org", "co", "xyz"]),
    )


def case_variants(domain: str) -> list[str]:
    return [domain, domain.upper(), domain.title(), domain.swapcase()]


class TestDomainNormalizationProperty:
    """Normalization yields one trimmed, lowercase canonical form."""

    @given(domain=valid_ascii_domain())
    @settings(max_examples=100)
    def test_case_and_whitespace_do_not_matter(self, domain: str) -> None:
        """
        *For any* valid name, every case variant surrounded by whitespace
        validates to the same lowercase canonical form.
        """
        validator = DomainValidator()
        for variant in case_variants(domain):
            result = validator.validate(f"  {variant}\t")
            assert result.valid
            assert result.canonical_domain == domain.lower()

    @given(domain=valid_ascii_domain())
    @settings(max_examples=100)
    def test_normalization_is_idempotent(self, domain: str) -> None:
        """*For any* valid name, validating the canonical form returns it unchanged."""
        validator = DomainValidator()
        canonical = validator.require_valid(domain.upper())
        assert validator.require_valid(canonical) == canonical
        assert DomainValidator.normalize(canonical) == canonical

    @pytest.mark.parametrize("raw", ["bücher.de", "Bücher.DE", "\u212aelvin.com", "xn--bcher-kva.dé"])
    def test_non_ascii_names_are_rejected(self, raw: str) -> None:
        validator = DomainValidator()
        result = validator.validate(raw)
        assert result.valid is False
        assert result.error.code == ErrorCode.INVALID_FORMAT
        with pytest.raises(InvalidFormatError):
            validator.require_valid(raw)


class TestDomainSyntaxProperty:
    """Names without a dot-separated alphabetic TLD are rejected."""

    @pytest.mark.parametrize("raw", [
        "",
        "   ",
        None,
        "localhost",
        "example",
        "example.c",
        "example.c0m",
        "exa mple.com",
        "example.com/path",
        "http://example.com",
        "user@example.com",
    ])
    def test_invalid_names_rejected(self, raw) -> None:
        result = DomainValidator().validate(raw)
        assert not result.valid
        assert result.canonical_domain is None
        assert result.error.code == ErrorCode.INVALID_FORMAT

    @given(label=valid_ascii_label())
    @settings(max_examples=50)
    def test_single_label_never_valid(self, label: str) -> None:
        """*For any* label without a TLD the check fails."""
        assert not DomainValidator().validate(label).valid

    def test_require_valid_raises_invalid_format(self) -> None:
        with pytest.raises(InvalidFormatError) as exc_info:
            DomainValidator().require_valid("not a domain")
        assert exc_info.value.code == "invalid_format"
        assert exc_info.value.details["name"] == "not a domain"

    @pytest.mark.parametrize("raw", ["example.com", "sub.example.co.id", "a-b.example.org"])
    def test_examples_accepted(self, raw: str) -> None:
        assert DomainValidator().validate(raw).canonical_domain == raw
