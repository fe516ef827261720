"""Allow-listed merge of stage updates into the TurnContext."""

from collections.abc import Mapping
from typing import Any

from frontline.conversation.models import AuditEntry, TurnContext

MERGEABLE_FIELDS: frozenset[str] = frozenset({
    "classification",
    "cleaned_input",
    "extracted_keywords",
    "intent",
    "intent_confidence",
    "entities",
    "proposed_response",
    "final_response",
    "final_action",
    "transfer_target",
    "short_circuit",
    "side_effects",
    "audit",
})


def merge_stage_update(ctx: TurnContext, update: Mapping[str, Any]) -> list[str]:
    """Apply ``update`` to ``ctx`` and return the names of dropped fields.

    ``audit`` and ``side_effects`` are appended, ``entities`` is merged key
    by key, every other allow-listed field is replaced. Anything not on
    the allow-list is ignored. The update is validated as a whole against
    a copy first, so an invalid value raises and leaves ``ctx`` unchanged.
    """
    dropped: list[str] = []
    changes: dict[str, Any] = {}
    for key, value in update.items():
        if key not in MERGEABLE_FIELDS:
            dropped.append(key)
            continue
        if key == "audit":
            changes[key] = [
                *ctx.audit,
                *(
                    entry if isinstance(entry, AuditEntry) else AuditEntry.model_validate(entry)
                    for entry in value
                ),
            ]
        elif key == "side_effects":
            changes[key] = [*ctx.side_effects, *(str(label) for label in value)]
        elif key == "entities":
            changes[key] = {**ctx.entities, **value}
        else:
            changes[key] = value

    staged = ctx.model_copy()
    for key, value in changes.items():
        setattr(staged, key, value)
    for key in changes:
        setattr(ctx, key, getattr(staged, key))
    return dropped
