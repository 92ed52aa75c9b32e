from datetime import date

import pytest

from utils.validators import (
    DUE_BACK_MESSAGE,
    GENRE_NAME_MESSAGE,
    IMPRINT_MESSAGE,
    BOOK_MESSAGE,
    FieldRule,
    FormValidator,
    TextValidator,
    bookinstance_form,
    genre_form,
)


def _instance_data(**overrides):
    data = {"book": "abc123", "imprint": "Gollancz, 2011.", "status": "Available", "due_back": ""}
    data.update(overrides)
    return data


def test_genre_name_is_trimmed():
    result = genre_form.validate({"name": "  Sci-Fi  "})
    assert result.is_valid
    assert result.values["name"] == "Sci-Fi"


@pytest.mark.parametrize("name", ["", "ab", "   ab   ", None])
def test_short_genre_name_rejected(name):
    result = genre_form.validate({"name": name})
    assert not result.is_valid
    assert result.error_for("name") == GENRE_NAME_MESSAGE


def test_genre_name_is_escaped():
    result = genre_form.validate({"name": "<b>Horror</b>"})
    assert result.is_valid
    assert result.values["name"] == "&lt;b&gt;Horror&lt;&#x2F;b&gt;"


def test_failed_value_is_still_sanitized():
    # A rejected value is echoed back into the form, so it must be clean too
    result = genre_form.validate({"name": " <a "})
    assert not result.is_valid
    assert result.values["name"] == "&lt;a"


def test_escape_table():
    assert TextValidator.escape("&\"'<>/\\`") == "&amp;&quot;&#x27;&lt;&gt;&#x2F;&#x5C;&#96;"


def test_valid_bookinstance_form():
    result = bookinstance_form.validate(_instance_data(due_back="2026-10-19"))
    assert result.is_valid
    assert result.values["due_back"] == date(2026, 10, 19)
    assert result.values["status"] == "Available"


@pytest.mark.parametrize("field,message", [("book", BOOK_MESSAGE), ("imprint", IMPRINT_MESSAGE)])
@pytest.mark.parametrize("value", ["", "   ", None])
def test_required_bookinstance_fields(field, message, value):
    result = bookinstance_form.validate(_instance_data(**{field: value}))
    assert not result.is_valid
    assert result.error_for(field) == message


@pytest.mark.parametrize("due_back", ["", None])
def test_missing_due_back_is_skipped(due_back):
    result = bookinstance_form.validate(_instance_data(due_back=due_back))
    assert result.is_valid
    assert result.values["due_back"] is None


@pytest.mark.parametrize("due_back", ["tomorrow", "2026-13-45", "19/10/2026", "   "])
def test_invalid_due_back_rejected(due_back):
    result = bookinstance_form.validate(_instance_data(due_back=due_back))
    assert result.error_for("due_back") == DUE_BACK_MESSAGE


def test_due_back_accepts_timestamp():
    result = bookinstance_form.validate(_instance_data(due_back="2026-10-19T08:30:00"))
    assert result.values["due_back"] == date(2026, 10, 19)


def test_empty_status_defaults_to_maintenance():
    result = bookinstance_form.validate(_instance_data(status=""))
    assert result.is_valid
    assert result.values["status"] == "Maintenance"


def test_unknown_status_rejected():
    result = bookinstance_form.validate(_instance_data(status="Lost"))
    assert result.error_for("status") is not None


def test_errors_are_aggregated_across_fields():
    result = bookinstance_form.validate({"book": "", "imprint": " ", "status": "", "due_back": "nope"})
    assert [e.field for e in result.errors] == ["book", "imprint", "due_back"]


def test_only_first_failure_per_field_is_reported():
    validator = FormValidator(
        FieldRule("code", "Bad code", TextValidator.min_length(5), TextValidator.one_of(["abcde"])),
    )
    result = validator.validate({"code": "x"})
    assert len(result.errors) == 1
    assert result.errors[0].message == "Bad code"
