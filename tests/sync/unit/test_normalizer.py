import pytest

from trackerlink.sync.errors import PayloadError
from trackerlink.sync.normalizer import creature_id, normalize_payload


def _row(name, initiative=10, wound=0, active=False, conditions=None, **extra) -> dict:
    row = {
        "name": name,
        "initiative": initiative,
        "isActive": active,
        "hpWoundLevel": wound,
        "conditions": conditions or [],
    }
    row.update(extra)
    return row


def test_orc_scenario_keeps_named_row_with_hurt_badge() -> None:
    payload = {
        "round": 3,
        "rows": [
            _row("Orc", initiative=12, wound=1, active=True),
            _row(None, initiative=5),
        ],
    }

    model = normalize_payload(payload)

    assert model.round == 3
    assert [creature.name for creature in model.creatures] == ["Orc"]
    orc = model.creatures[0]
    assert orc.is_active is True
    assert orc.wound_info is not None
    assert orc.wound_info.title == "Hurt"
    assert orc.id == "Orc-12-0"


def test_empty_and_null_names_are_dropped() -> None:
    payload = {"round": 1, "rows": [_row(""), _row(None), _row("Bard"), _row("Cleric")]}

    model = normalize_payload(payload)

    assert [creature.name for creature in model.creatures] == ["Bard", "Cleric"]


def test_host_order_is_preserved_without_resorting() -> None:
    payload = {
        "round": 1,
        "rows": [
            _row("Zombie", initiative=3),
            _row("Archer", initiative=20),
            _row("Mage", initiative=None),
            _row("Knight", initiative=20),
        ],
    }

    model = normalize_payload(payload)

    assert [creature.name for creature in model.creatures] == ["Zombie", "Archer", "Mage", "Knight"]


def test_ids_are_unique_for_duplicate_name_and_initiative() -> None:
    payload = {"round": 1, "rows": [_row("Goblin", 12), _row("Goblin", 12), _row("Goblin", None)]}

    model = normalize_payload(payload)
    ids = [creature.id for creature in model.creatures]

    assert ids == ["Goblin-12-0", "Goblin-12-1", "Goblin-null-2"]
    assert len(set(ids)) == len(ids)


def test_position_index_counts_only_named_rows() -> None:
    payload = {"round": 1, "rows": [_row(None), _row("Wolf", 8)]}

    assert normalize_payload(payload).creatures[0].id == "Wolf-8-0"
    assert creature_id("Wolf", None, 4) == "Wolf-null-4"


def test_metadata_tags_are_hidden_from_status_effects() -> None:
    conditions = [
        {"entity": {"name": "Player", "color": "#000", "turns": None}},
        {"entity": {"name": "BOSS", "color": "#000", "turns": None}},
        {"entity": {"name": "fa-crown", "color": "#d4af37", "turns": None}},
        {"entity": {"name": "Stunned", "color": "#f00", "turns": 2}},
        {"name": "Prone", "color": "#888"},
    ]
    payload = {"round": 4, "rows": [_row("Warlord", wound=2, conditions=conditions)]}

    creature = normalize_payload(payload).creatures[0]

    assert [(effect.name, effect.turns) for effect in creature.status_effects] == [("Stunned", 2), ("Prone", None)]
    assert creature.is_player is True
    assert creature.is_boss is True
    assert creature.icon_override_class == "fa-crown"
    assert creature.icon_override_color == "#d4af37"


def test_players_get_no_wound_badge_and_hp_passes_through() -> None:
    payload = {"round": 1, "rows": [_row("Aria", wound=-1, hpCurrent=17, hpMax=24)]}

    creature = normalize_payload(payload).creatures[0]

    assert creature.is_player is True
    assert creature.wound_info is None
    assert creature.hp_current == 17
    assert creature.hp_max == 24


def test_round_passes_through_verbatim() -> None:
    for round_number in (0, 1, 57):
        assert normalize_payload({"round": round_number, "rows": []}).round == round_number


def test_to_dict_uses_wire_style_keys() -> None:
    payload = {"round": 2, "rows": [_row("Orc", 12, wound=3, conditions=[{"name": "Prone", "color": "#888"}])]}

    data = normalize_payload(payload).to_dict()

    creature = data["creatures"][0]
    assert data["round"] == 2
    assert creature["woundInfo"]["isDefeated"] is True
    assert creature["statusEffects"] == [{"name": "Prone", "color": "#888", "turns": None}]
    assert creature["isPlayer"] is False


@pytest.mark.parametrize(
    "payload",
    [
        {"round": 1},
        {"round": 1, "rows": None},
        {"round": 1, "rows": "Orc"},
        {"round": 1, "rows": [{"name": "Orc", "initiative": "high"}]},
        ["Orc"],
        None,
    ],
)
def test_malformed_payloads_are_rejected(payload) -> None:
    with pytest.raises(PayloadError):
        normalize_payload(payload)
