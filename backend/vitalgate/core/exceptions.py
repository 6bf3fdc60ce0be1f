"""
Exceptions
==========
``ValidationException`` is the typed validation error of the API. Every
validator (pydantic request schemas, path-parameter checks and the
database-backed rules in ``vitalgate.validation``) ends up raising it,
and the global handler in ``vitalgate.main`` renders it as a 422:

    {"success": false, "message": "<summary>", "errors": {"field": ["..."]}}
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from pydantic import ValidationError

# Location prefixes FastAPI adds to RequestValidationError entries
_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})


class ValidationException(Exception):
    """Request validation failed. Carries per-field error messages."""

    status_code = 422

    def __init__(self, errors: Mapping[str, Sequence[str]]) -> None:
        self.errors: dict[str, list[str]] = {field: list(msgs) for field, msgs in errors.items()}
        super().__init__(_summarise(self.errors))

    @property
    def message(self) -> str:
        return str(self)

    @classmethod
    def for_field(cls, field: str, message: str) -> ValidationException:
        return cls({field: [message]})

    @classmethod
    def from_error_list(cls, details: Iterable[Mapping[str, Any]]) -> ValidationException:
        """Build from pydantic-style error dicts (``loc`` / ``msg``)."""
        errors: dict[str, list[str]] = {}
        for detail in details:
            loc = [str(part) for part in detail.get("loc", ())]
            if loc and loc[0] in _LOCATION_PREFIXES:
                loc = loc[1:]
            field = ".".join(loc) or "body"
            errors.setdefault(field, []).append(_clean_message(str(detail.get("msg", "Invalid value"))))
        return cls(errors)

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> ValidationException:
        return cls.from_error_list(exc.errors())


def _clean_message(message: str) -> str:
    # pydantic prefixes custom validator messages with "Value error, "
    return message.removeprefix("Value error, ").replace('"', "")


def _summarise(errors: dict[str, list[str]]) -> str:
    messages = [msg for msgs in errors.values() for msg in msgs]
    if not messages:
        return "The given data was invalid"
    extra = len(messages) - 1
    if extra == 0:
        return messages[0]
    return f"{messages[0]} (and {extra} more error{'s' if extra > 1 else ''})"
