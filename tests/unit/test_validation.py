"""Tests for input validation and sanitisation helpers."""

import uuid

import pytest

from mysteria.errors import InputValidationError
from mysteria.validation import (
    normalize_email,
    parse_uuid,
    reading_time_minutes,
    require_fields,
    sanitize_html,
    sanitize_plain_text,
    slugify,
    validate_content,
    validate_name,
)


class TestRequireFields:
    def test_all_present(self) -> None:
        require_fields(name="Ana", email="ana@example.com")

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_or_empty(self, value: str | None) -> None:
        with pytest.raises(InputValidationError, match="Missing required fields"):
            require_fields(name="Ana", email=value)


class TestNormalizeEmail:
    def test_lowercases_and_trims(self) -> None:
        assert normalize_email("  Ana.Smith@Example.COM ") == "ana.smith@example.com"

    def test_invalid_format(self) -> None:
        with pytest.raises(InputValidationError, match="Invalid email format"):
            normalize_email("not-an-email")

    def test_too_long(self) -> None:
        with pytest.raises(InputValidationError, match="less than 255"):
            normalize_email("a" * 250 + "@example.com")


class TestValidateName:
    def test_albanian_letters_allowed(self) -> None:
        assert validate_name(" Arbër Çela ") == "Arbër Çela"

    def test_punctuation_allowed(self) -> None:
        assert validate_name("O'Brien-Smith, Jr.") == "O'Brien-Smith, Jr."

    def test_blank(self) -> None:
        with pytest.raises(InputValidationError, match="Name cannot be empty"):
            validate_name("   ")

    def test_too_long(self) -> None:
        with pytest.raises(InputValidationError, match="less than 100 characters"):
            validate_name("a" * 101)

    def test_min_length_message(self) -> None:
        with pytest.raises(InputValidationError, match="between 2 and 100 characters"):
            validate_name("A", min_length=2)

    def test_markup_rejected(self) -> None:
        with pytest.raises(InputValidationError, match="Name can only contain"):
            validate_name("<b>Ana</b>")


class TestValidateContent:
    def test_trims(self) -> None:
        assert validate_content("  hello  ") == "hello"

    def test_empty(self) -> None:
        with pytest.raises(InputValidationError, match="Content cannot be empty"):
            validate_content("   ")

    def test_max_length(self) -> None:
        with pytest.raises(InputValidationError, match="less than 5000 characters"):
            validate_content("x" * 5001)

    def test_labelled_range(self) -> None:
        with pytest.raises(InputValidationError, match="Theory must be between 10 and 5000 characters"):
            validate_content("too short", min_length=10, label="Theory")


class TestSanitize:
    def test_plain_text_strips_tags(self) -> None:
        assert sanitize_plain_text("<b>bold</b> move") == "bold move"

    def test_plain_text_strips_encoded_tags(self) -> None:
        assert sanitize_plain_text("&lt;script&gt;alert(1)&lt;/script&gt;hi") == "alert(1)hi"

    def test_html_removes_scripts_and_handlers(self) -> None:
        cleaned = sanitize_html('<p onclick="steal()">Hi</p><script>alert(1)</script>')
        assert "<script" not in cleaned
        assert "onclick" not in cleaned
        assert "<p" in cleaned

    def test_html_removes_javascript_urls(self) -> None:
        assert "javascript:" not in sanitize_html('<a href="javascript:alert(1)">x</a>')

    def test_html_keeps_image_data_urls(self) -> None:
        assert "data:image/png" in sanitize_html('<img src="data:image/png;base64,AAAA">')

    def test_html_removes_iframes(self) -> None:
        assert sanitize_html('<iframe src="https://evil"></iframe>ok') == "ok"

    def test_html_split_script_tag_does_not_reassemble(self) -> None:
        cleaned = sanitize_html("<scr<script></script>ipt>alert(1)</script>")
        assert "<script" not in cleaned

    def test_html_removes_entity_encoded_javascript_url(self) -> None:
        assert sanitize_html('<a href="jav&#x61;script:alert(1)">x</a>') == "<a>x</a>"

    def test_html_removes_non_image_data_urls(self) -> None:
        assert sanitize_html('<a href="data:text/html;base64,PHNjcmlwdD4=">x</a>') == "<a>x</a>"
        assert "data:" not in sanitize_html('<img src="data:text/html;base64,PHNjcmlwdD4=">')

    def test_html_keeps_formatting_and_links(self) -> None:
        cleaned = sanitize_html('<h2>Night</h2><p><a href="https://example.com">lights</a></p>')
        assert cleaned == '<h2>Night</h2><p><a href="https://example.com">lights</a></p>'

    def test_plain_text_split_script_tag_does_not_reassemble(self) -> None:
        assert "<script" not in sanitize_plain_text("<scr<script></script>ipt>alert(1)</script>")

    def test_plain_text_double_encoded_markup(self) -> None:
        assert sanitize_plain_text("&amp;lt;b&amp;gt;hi&amp;lt;/b&amp;gt;") == "hi"

    def test_plain_text_keeps_literal_angle_brackets(self) -> None:
        assert sanitize_plain_text("I <3 ghost stories & fog") == "I <3 ghost stories & fog"


class TestHelpers:
    def test_parse_uuid(self) -> None:
        value = uuid.uuid4()
        assert parse_uuid(str(value)) == value

    def test_parse_uuid_invalid(self) -> None:
        with pytest.raises(InputValidationError, match="Invalid theory ID"):
            parse_uuid("nope", "Invalid theory ID")

    def test_reading_time_minimum_one(self) -> None:
        assert reading_time_minutes("short") == 1

    def test_reading_time_ignores_markup(self) -> None:
        text = "<p>" + " ".join(["word"] * 401) + "</p>"
        assert reading_time_minutes(text) == 3

    def test_slugify(self) -> None:
        assert slugify("Fantazma e Shtëpisë së Vjetër!") == "fantazma-e-shtepise-se-vjeter"

    def test_slugify_fallback(self) -> None:
        assert len(slugify("!!!")) == 12
