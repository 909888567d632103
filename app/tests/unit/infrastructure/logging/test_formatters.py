"""Unit tests for the structlog processors."""

import pytest

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
)

MASK = "***REDACTED***"


@pytest.mark.unit
class TestMaskSensitiveData:
    """Tests for credential redaction."""

    def test_masks_sensitive_keys(self):
        processor = mask_sensitive_data()

        result = processor(None, "info", {"event": "x", "api_key": "abc", "DEEPL_API_KEY": "k"})

        assert result == {"event": "x", "api_key": MASK, "DEEPL_API_KEY": MASK}

    def test_none_values_are_kept(self):
        result = mask_sensitive_data()(None, "info", {"api_key": None})

        assert result == {"api_key": None}

    def test_masks_nested_provider_configs(self):
        providers = [{"name": "deepl", "priority": 1, "api_key": "secret-key"}]

        result = mask_sensitive_data()(None, "info", {"providers": providers})

        assert result["providers"] == [{"name": "deepl", "priority": 1, "api_key": MASK}]
        assert providers[0]["api_key"] == "secret-key"

    @pytest.mark.parametrize(
        "message,expected",
        [
            (
                "Client error for url 'https://translation.googleapis.com/language/translate/v2?key=AIza123&q=x'",
                f"Client error for url 'https://translation.googleapis.com/language/translate/v2?key={MASK}&q=x'",
            ),
            ("header DeepL-Auth-Key 1234:fx rejected", f"header DeepL-Auth-Key {MASK} rejected"),
            (
                "{'Ocp-Apim-Subscription-Key': 'az-1'}",
                f"{{'Ocp-Apim-Subscription-Key': '{MASK}'}}",
            ),
        ],
    )
    def test_scrubs_inline_credentials(self, message, expected):
        result = mask_sensitive_data()(None, "warning", {"error": message})

        assert result["error"] == expected

    def test_additional_patterns(self):
        processor = mask_sensitive_data(additional_patterns=frozenset({"guest_email"}))

        assert processor(None, "info", {"guest_email": "a@b.c"}) == {"guest_email": MASK}


@pytest.mark.unit
class TestTruncateLargeValues:
    """Tests for value truncation."""

    def test_translation_texts_use_short_limit(self):
        processor = truncate_large_values(max_length=50, text_length=10)

        result = processor(None, "info", {"original_text": "x" * 20, "message": "y" * 20})

        assert result["original_text"] == "x" * 10 + "...[truncated, 20 chars total]"
        assert result["message"] == "y" * 20

    def test_other_values_use_max_length(self):
        result = truncate_large_values(max_length=5)(None, "info", {"message": "abcdefgh", "n": 7})

        assert result == {"message": "abcde...[truncated, 8 chars total]", "n": 7}


@pytest.mark.unit
class TestAddAppInfo:
    """Tests for add_app_info."""

    def test_stamps_name_and_version(self):
        result = add_app_info("pms-localization", "abc123")(None, "info", {"event": "x"})

        assert result["app_name"] == "pms-localization"
        assert result["app_version"] == "abc123"
