"""
Property-based tests for internationalization (i18n) module.
"""

import re

from hypothesis import given, settings
from hypothesis import strategies as st

from nawala_checker.i18n import (
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
    get_message,
    get_missing_translations,
    validate_translations,
)


PLACEHOLDER = re.compile(r"\{(\w+)\}")


class TestTranslationCoverageProperty:
    """English and Indonesian carry every message key."""

    def test_all_languages_have_all_translations(self) -> None:
        assert TRANSLATIONS
        for language in SUPPORTED_LANGUAGES:
            assert get_missing_translations(language) == set()
        assert all(not missing for missing in validate_translations().values())

    @given(key=st.sampled_from(sorted(TRANSLATIONS)))
    @settings(max_examples=100)
    def test_translations_share_placeholders(self, key: str) -> None:
        """*For any* key, both languages use the same format placeholders."""
        placeholders = {
            language: set(PLACEHOLDER.findall(text))
            for language, text in TRANSLATIONS[key].items()
        }
        assert placeholders["en"] == placeholders["id"]

    @given(key=st.sampled_from(sorted(TRANSLATIONS)), language=st.sampled_from(sorted(SUPPORTED_LANGUAGES)))
    @settings(max_examples=100)
    def test_every_message_formats(self, key: str, language: str) -> None:
        """*For any* key, supplying its placeholders yields a complete message."""
        kwargs = {name: "x" for name in PLACEHOLDER.findall(TRANSLATIONS[key][language])}
        message = get_message(key, language, **kwargs)
        assert message
        assert not PLACEHOLDER.search(message)


class TestMessageLookup:

    def test_unknown_language_falls_back(self) -> None:
        assert DEFAULT_LANGUAGE == "en"
        assert get_message("label.blocked", "de") == get_message("label.blocked", "en")

    def test_unknown_key_returns_key(self) -> None:
        assert get_message("no.such.key", "id") == "no.such.key"

    def test_indonesian_labels(self) -> None:
        assert get_message("label.blocked", "id") == "DIBLOKIR"
        assert get_message("report.blocked", "en", count=2) == "• Blocked: 2"
