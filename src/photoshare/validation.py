"""
Declarative field validation.

Each request type has a fixed rule set: an ordered list of rules per field.
Every field is checked independently and reports its first violated rule,
so callers get the whole violation mapping in one round trip. Cross-field
checks (password confirmation) belong to the handlers.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Sequence

from pydantic import EmailStr, HttpUrl, TypeAdapter, ValidationError

Violations = Dict[str, str]

_email_adapter = TypeAdapter(EmailStr)
_url_adapter = TypeAdapter(HttpUrl)


class Rule:
    """A single field constraint. `check` returns True when the value passes."""

    def __init__(self, check: Callable[[Any], bool], message: str):
        self.check = check
        self.message = message

    def message_for(self, field: str) -> str:
        return self.message.format(field=field)


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _is_email(value: Any) -> bool:
    try:
        _email_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def _is_url(value: Any) -> bool:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


# PUBLIC_INTERFACE
def required() -> Rule:
    return Rule(_present, "{field} is required")


# PUBLIC_INTERFACE
def email() -> Rule:
    return Rule(_is_email, "{field} must be a valid email address")


# PUBLIC_INTERFACE
def min_length(n: int) -> Rule:
    return Rule(lambda v: isinstance(v, str) and len(v) >= n, "{field} must be at least %d characters" % n)


# PUBLIC_INTERFACE
def url() -> Rule:
    return Rule(_is_url, "{field} must be a valid URL")


RuleSet = Mapping[str, Sequence[Rule]]


# PUBLIC_INTERFACE
def validate(values: Mapping[str, Any], rules: RuleSet) -> Violations:
    """
    Check `values` against `rules`.

    Fields without a `required` rule are skipped when absent. Returns a
    field -> message mapping; an empty mapping means the values are valid.
    """
    violations: Violations = {}
    for field, field_rules in rules.items():
        value = values.get(field)
        is_required = any(r.check is _present for r in field_rules)
        if not is_required and not _present(value):
            continue
        for rule in field_rules:
            if not rule.check(value):
                violations[field] = rule.message_for(field)
                break
    return violations


REGISTER_RULES: Dict[str, List[Rule]] = {
    "username": [required()],
    "email": [required(), email()],
    "password": [required(), min_length(6)],
    "confirmPassword": [required()],
}

LOGIN_RULES: Dict[str, List[Rule]] = {
    "email": [required(), email()],
    "password": [required()],
}

USER_UPDATE_RULES: Dict[str, List[Rule]] = {
    "username": [required()],
    "email": [required(), email()],
    "oldPassword": [required()],
    "newPassword": [required(), min_length(6)],
    "confirmPassword": [required()],
}

PHOTO_RULES: Dict[str, List[Rule]] = {
    "title": [required()],
    "photoUrl": [required(), url()],
}
