"""Wound tier and role classification for tracker rows."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import WoundInfo
from .wire import RawCondition

PLAYER_TAG = "player"
NPC_TAG = "npc"
BOSS_TAG = "boss"
ROLE_TAGS = frozenset({PLAYER_TAG, NPC_TAG, BOSS_TAG})
ICON_OVERRIDE_PREFIX = "fa-"

HEALTHY_BADGE = WoundInfo(title="Healthy", icon_class="fas fa-heart", color_class="text-green-700")

WOUND_TIERS: dict[int, WoundInfo | None] = {
    0: None,
    1: WoundInfo(title="Hurt", icon_class="fas fa-droplet", color_class="text-amber-600"),
    2: WoundInfo(title="Bloodied", icon_class="fas fa-burst", color_class="text-red-700"),
    3: WoundInfo(
        title="Defeated",
        icon_class="fas fa-skull-crossbones",
        color_class="text-stone-500",
        is_defeated=True,
    ),
}


@dataclass(frozen=True)
class Classification:
    is_player: bool
    is_npc: bool
    is_boss: bool
    role: str | None
    wound_info: WoundInfo | None
    icon_override_class: str | None = None
    icon_override_color: str | None = None


def is_role_tag(name: str) -> bool:
    return name.lower() in ROLE_TAGS


def is_icon_override_tag(name: str) -> bool:
    return name.lower().startswith(ICON_OVERRIDE_PREFIX)


def is_metadata_tag(name: str) -> bool:
    """Return True for tags consumed as metadata instead of shown as conditions."""
    return is_role_tag(name) or is_icon_override_tag(name)


def wound_info_for_level(level: int | None, show_healthy_badge: bool = False) -> WoundInfo | None:
    """Map an ``hpWoundLevel`` to its badge; players and unknown levels get none."""
    if level is None or level < 0:
        return None
    if level == 0 and show_healthy_badge:
        return HEALTHY_BADGE
    return WOUND_TIERS.get(level)


def classify(
    hp_wound_level: int | None,
    conditions: Iterable[RawCondition],
    show_healthy_badge: bool = False,
) -> Classification:
    conditions = list(conditions)
    tags = {condition.name.lower() for condition in conditions}

    has_player_tag = PLAYER_TAG in tags
    is_npc = NPC_TAG in tags
    is_boss = BOSS_TAG in tags
    is_player = has_player_tag or (hp_wound_level is not None and hp_wound_level < 0)

    if is_boss:
        role: str | None = BOSS_TAG
    elif is_npc:
        role = NPC_TAG
    elif is_player:
        role = PLAYER_TAG
    else:
        role = None

    override = next((condition for condition in conditions if is_icon_override_tag(condition.name)), None)

    return Classification(
        is_player=is_player,
        is_npc=is_npc,
        is_boss=is_boss,
        role=role,
        wound_info=wound_info_for_level(hp_wound_level, show_healthy_badge=show_healthy_badge),
        icon_override_class=override.name if override is not None else None,
        icon_override_color=override.color if override is not None else None,
    )
