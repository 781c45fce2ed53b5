"""Map raw session payloads onto the display model."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .classifier import classify, is_metadata_tag
from .errors import PayloadError
from .models import Creature, DisplayModel, StatusEffect
from .wire import RawRow, RawSessionPayload


def normalize_payload(payload: Any, show_healthy_badge: bool = False) -> DisplayModel:
    """Build a DisplayModel from a raw state payload.

    Rows keep the order sent by the host, which already reflects the resolved
    turn order including tie-breaks. Unnamed rows are dropped before ids are
    assigned.
    """
    raw = _validate(payload)
    named_rows = [row for row in raw.rows if row.name]
    creatures = tuple(
        _build_creature(row=row, index=index, show_healthy_badge=show_healthy_badge)
        for index, row in enumerate(named_rows)
    )
    return DisplayModel(round=raw.round, creatures=creatures)


def creature_id(name: str, initiative: int | None, index: int) -> str:
    initiative_part = "null" if initiative is None else str(initiative)
    return f"{name}-{initiative_part}-{index}"


def _validate(payload: Any) -> RawSessionPayload:
    if isinstance(payload, RawSessionPayload):
        return payload
    if not isinstance(payload, dict):
        raise PayloadError(f"State payload must be an object, got {type(payload).__name__}")
    if "rows" not in payload:
        raise PayloadError("State payload is missing 'rows'")
    try:
        return RawSessionPayload.model_validate(payload)
    except ValidationError as exc:
        raise PayloadError(f"State payload failed validation: {exc}") from exc


def _build_creature(row: RawRow, index: int, show_healthy_badge: bool) -> Creature:
    name = row.name or ""
    classification = classify(row.hp_wound_level, row.conditions, show_healthy_badge=show_healthy_badge)
    status_effects = tuple(
        StatusEffect(name=condition.name, color=condition.color, turns=condition.turns)
        for condition in row.conditions
        if not is_metadata_tag(condition.name)
    )
    return Creature(
        id=creature_id(name, row.initiative, index),
        name=name,
        initiative=row.initiative,
        is_active=row.is_active,
        hp_current=row.hp_current,
        hp_max=row.hp_max,
        is_player=classification.is_player,
        is_npc=classification.is_npc,
        is_boss=classification.is_boss,
        role=classification.role,
        wound_info=classification.wound_info,
        icon_override_class=classification.icon_override_class,
        icon_override_color=classification.icon_override_color,
        status_effects=status_effects,
    )
