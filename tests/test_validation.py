from src.photoshare.validation import (
    LOGIN_RULES,
    PHOTO_RULES,
    REGISTER_RULES,
    min_length,
    required,
    validate,
)


def test_valid_register_payload():
    values = {
        "username": "alice",
        "email": "alice@mail.com",
        "password": "secret123",
        "confirmPassword": "secret123",
    }
    assert validate(values, REGISTER_RULES) == {}


def test_every_field_is_reported():
    violations = validate({"email": "not-an-email", "password": "abc"}, REGISTER_RULES)
    assert violations == {
        "username": "username is required",
        "email": "email must be a valid email address",
        "password": "password must be at least 6 characters",
        "confirmPassword": "confirmPassword is required",
    }


def test_first_failing_rule_wins():
    violations = validate({"email": "", "password": ""}, LOGIN_RULES)
    assert violations == {"email": "email is required", "password": "password is required"}


def test_whitespace_is_missing():
    assert validate({"title": "   "}, {"title": [required()]}) == {"title": "title is required"}


def test_optional_field_skipped_when_absent():
    rules = {"nickname": [min_length(3)]}
    assert validate({}, rules) == {}
    assert validate({"nickname": "ab"}, rules) == {"nickname": "nickname must be at least 3 characters"}


def test_photo_url_shape():
    ok = {"title": "Sunset", "photoUrl": "http://testserver/public/photos_1_1_cat.jpg"}
    assert validate(ok, PHOTO_RULES) == {}

    bad = {"title": "Sunset", "photoUrl": "not a url"}
    assert validate(bad, PHOTO_RULES) == {"photoUrl": "photoUrl must be a valid URL"}
