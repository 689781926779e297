from betaboard.utils.validators import (
    validate_email,
    validate_email_for_platform,
    validate_required,
    validate_min_length,
    validate_registration,
    validate_feedback,
    clean_str,
    parse_bool,
)
from betaboard.utils.helpers import paginate, page_window, parse_id_list


def test_validate_email_rules():
    assert validate_email("").message == "Email address is required"
    assert validate_email("foo@bar").is_valid is False
    assert validate_email("foo@bar").message == "Please enter a valid email address"
    assert validate_email("foo@bar.com").is_valid is True
    assert validate_email("a b@bar.com").is_valid is False


def test_validate_email_for_platform():
    assert validate_email_for_platform("me@icloud.com", "ios").is_valid
    assert validate_email_for_platform("me@ME.com", "ios").is_valid
    assert not validate_email_for_platform("me@gmail.com", "ios").is_valid
    assert validate_email_for_platform("me@gmail.com", "android").is_valid
    r = validate_email_for_platform("me@yahoo.com", "android")
    assert not r.is_valid and "Gmail" in r.message


def test_required_and_min_length_messages():
    assert validate_required("  ", "Full name").message == "Full name is required"
    assert validate_min_length("short", 10, "Comment").message == "Comment must be at least 10 characters long"
    assert validate_min_length("long enough!", 10, "Comment").is_valid


def test_clean_str_collapses_whitespace():
    assert clean_str("  Pixel   8 \n Pro ") == "Pixel 8 Pro"
    assert clean_str("   ") is None
    assert clean_str("abcdef", max_len=3) == "abc"


def test_registration_reports_each_field():
    errors = validate_registration({})
    assert set(errors) == {"full_name", "email", "device_type", "device_model", "experience_level"}

    ok = validate_registration({
        "full_name": "Ada", "email": "ada@example.com", "device_type": "ios",
        "device_model": "iPhone 15", "experience_level": "beginner",
    })
    assert ok == {}


def test_registration_platform_email_only_when_required():
    data = {
        "full_name": "Ada", "email": "ada@example.com", "device_type": "ios",
        "device_model": "iPhone 15", "experience_level": "beginner",
    }
    assert validate_registration(data) == {}
    assert "email" in validate_registration(data, require_platform_email=True)


def test_feedback_email_optional_when_anonymous():
    base = {"device_type": "android", "device_model": "Pixel", "feedback_type": "suggestion",
            "comment": "Please add a dark mode."}
    assert validate_feedback({**base, "is_anonymous": True}) == {}
    assert "email" in validate_feedback({**base, "is_anonymous": False})
    assert "email" in validate_feedback({**base, "email": "nope"})


def test_feedback_comment_min_length():
    errors = validate_feedback({"device_type": "ios", "device_model": "X", "feedback_type": "bug_report",
                                "comment": "too short", "is_anonymous": True})
    assert errors == {"comment": "Comment must be at least 10 characters long"}


def test_parse_bool():
    assert parse_bool("on") and parse_bool(True) and parse_bool("true")
    assert not parse_bool(None) and not parse_bool("") and not parse_bool("off")


def test_paginate_clamps_and_reports_bounds():
    items = list(range(23))
    p = paginate(items, 3, 10)
    assert p["items"] == [20, 21, 22]
    assert (p["first"], p["last"], p["total"], p["pages"]) == (21, 23, 23, 3)
    assert paginate(items, 99, 10)["page"] == 3
    assert paginate([], 1, 10)["first"] == 0


def test_page_window_is_centred():
    assert page_window(1, 3) == [1, 2, 3]
    assert page_window(1, 10) == [1, 2, 3, 4, 5]
    assert page_window(6, 10) == [4, 5, 6, 7, 8]
    assert page_window(10, 10) == [6, 7, 8, 9, 10]


def test_parse_id_list():
    assert parse_id_list("3, 1,x,3") == [3, 1]
    assert parse_id_list([2, "5"]) == [2, 5]
    assert parse_id_list(None) == []
