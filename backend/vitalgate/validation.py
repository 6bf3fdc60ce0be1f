"""
Validation
==========
Glue between the pydantic request schemas and ``ValidationException``,
plus ``ensure_unique``, the database-backed rule the schemas cannot
express: no other row already holds the same values.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from vitalgate.core.exceptions import ValidationException
from vitalgate.db.entity import Entity

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def validate(model: type[M], payload: Any) -> M:
    """Parse ``payload`` into ``model`` or raise ValidationException."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationException.from_pydantic(exc) from exc


def ensure_unique(
    entity: type[Entity],
    payload: Mapping[str, Any],
    fields: Iterable[str],
    exclude_id: Optional[Any] = None,
) -> None:
    """Raise if a row already matches ``payload`` on every one of ``fields``.

    Fields missing from the payload (or null) are ignored; with none left
    there is nothing to compare and the rule passes. ``exclude_id`` skips
    the row being updated.
    """
    present = [field for field in fields if payload.get(field) is not None]
    if not present:
        return

    query = entity.query()
    for field in present:
        query = query.where(field, payload[field])
    if exclude_id is not None:
        query = query.where(entity.__primary_key__, "!=", exclude_id)

    if query.exists():
        joined = ", ".join(present)
        logger.info("Duplicate %s rejected on %s", entity.__table__, joined)
        raise ValidationException.for_field(
            present[0], f"A record with the same {joined} already exists."
        )

