"""Field-wise delta merge.

Only keys present in a patch (``model_fields_set``) are applied. An explicit
``None`` is applied when the target field accepts ``None`` and ignored
otherwise. Nested models merge recursively; lists are replaced whole.
"""

import logging
from typing import Any, Optional, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel

from ems_trainer.models.encounter import Encounter
from ems_trainer.models.vitals import StateDelta

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _accepts_none(annotation: Any) -> bool:
    return annotation is type(None) or type(None) in get_args(annotation)


def _model_type(annotation: Any) -> Optional[type[BaseModel]]:
    """The BaseModel class inside ``Optional[Model]`` / ``Model``, if any."""
    candidates = get_args(annotation) if get_origin(annotation) is Union else (annotation,)
    for candidate in candidates:
        if isinstance(candidate, type) and issubclass(candidate, BaseModel):
            return candidate
    return None


def merge_patch(current: M, patch: BaseModel) -> M:
    """Return a copy of ``current`` with every present field of ``patch`` applied."""
    fields = type(current).model_fields
    updates: dict[str, Any] = {}

    for name in patch.model_fields_set:
        if name not in fields:
            continue
        annotation = fields[name].annotation
        value = getattr(patch, name)

        if value is None:
            if _accepts_none(annotation):
                updates[name] = None
            else:
                logger.debug(f"Ignoring null for non-nullable field {type(current).__name__}.{name}")
            continue

        if isinstance(value, BaseModel):
            existing = getattr(current, name)
            if isinstance(existing, BaseModel):
                updates[name] = merge_patch(existing, value)
            else:
                target = _model_type(annotation)
                if target is None:
                    continue
                present = {k: v for k, v in value.model_dump(exclude_unset=True).items() if v is not None}
                updates[name] = target.model_validate(present)
            continue

        updates[name] = value

    return current.model_copy(update=updates) if updates else current


def apply_delta(encounter: Encounter, delta: StateDelta) -> None:
    """Merge an oracle delta into the encounter's vitals and patient state."""
    if delta.vital_signs is not None:
        encounter.vital_signs = merge_patch(encounter.vital_signs, delta.vital_signs)
    if delta.patient_state is not None:
        encounter.patient_state = merge_patch(encounter.patient_state, delta.patient_state)
