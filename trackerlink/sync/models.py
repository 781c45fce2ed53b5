"""Display models published to the UI layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StatusEffect:
    name: str
    color: str
    turns: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "color": self.color, "turns": self.turns}


@dataclass(frozen=True)
class WoundInfo:
    title: str
    icon_class: str
    color_class: str
    is_defeated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "iconClass": self.icon_class,
            "colorClass": self.color_class,
            "isDefeated": self.is_defeated,
        }


@dataclass(frozen=True)
class Creature:
    id: str
    name: str
    initiative: int | None
    is_active: bool
    hp_current: int | None = None
    hp_max: int | None = None
    is_player: bool = False
    is_npc: bool = False
    is_boss: bool = False
    role: str | None = None
    wound_info: WoundInfo | None = None
    icon_override_class: str | None = None
    icon_override_color: str | None = None
    status_effects: tuple[StatusEffect, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "initiative": self.initiative,
            "hpCurrent": self.hp_current,
            "hpMax": self.hp_max,
            "isPlayer": self.is_player,
            "isNpc": self.is_npc,
            "isBoss": self.is_boss,
            "role": self.role,
            "isActive": self.is_active,
            "woundInfo": self.wound_info.to_dict() if self.wound_info is not None else None,
            "iconOverrideClass": self.icon_override_class,
            "iconOverrideColor": self.icon_override_color,
            "statusEffects": [effect.to_dict() for effect in self.status_effects],
        }


@dataclass(frozen=True)
class DisplayModel:
    round: int
    creatures: tuple[Creature, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "creatures": [creature.to_dict() for creature in self.creatures],
        }
