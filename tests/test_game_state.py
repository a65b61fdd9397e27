"""Tests for game-state card references and the tagged hand."""
import pytest
from pydantic import TypeAdapter, ValidationError

from oraclemint.models.game_state import (
    CardReference,
    FullyKnownHand,
    Hand,
    PartiallyKnownHand,
    PlayerZones,
)


def test_hand_is_parsed_by_its_kind_tag():
    adapter = TypeAdapter(Hand)

    full = adapter.validate_python({"kind": "fully_known", "cards": [{"name": "Opt"}, {"name": "Shock"}]})
    partial = adapter.validate_python({"kind": "partially_known", "count": 7, "known": [{"name": "Opt"}]})

    assert isinstance(full, FullyKnownHand)
    assert full.count == 2
    assert [card.name for card in full.known] == ["Opt", "Shock"]
    assert isinstance(partial, PartiallyKnownHand)
    assert partial.count == 7


def test_unknown_hand_kind_is_rejected():
    with pytest.raises(ValidationError):
        TypeAdapter(Hand).validate_python({"kind": "mostly_known", "count": 3})


def test_card_reference_bounds():
    with pytest.raises(ValidationError):
        CardReference(name="")
    with pytest.raises(ValidationError):
        CardReference(name="Fire // Ice", face_index=2)

    assert CardReference(name="Fire // Ice", face_index=1).face_index == 1


def test_player_zones_list_every_referenced_name_once():
    zones = PlayerZones.model_validate(
        {
            "battlefield": [{"name": "Delver of Secrets"}, {"name": "Island"}],
            "hand": {"kind": "partially_known", "count": 4, "known": [{"name": "Brainstorm"}]},
            "graveyard": [{"name": "Island"}, {"name": "Fire // Ice"}],
            "exile": [],
            "command_zone": [{"name": "Talrand, Sky Summoner"}],
        }
    )

    assert zones.card_names() == [
        "Delver of Secrets",
        "Island",
        "Brainstorm",
        "Fire // Ice",
        "Talrand, Sky Summoner",
    ]


def test_player_zones_default_to_an_empty_known_hand():
    zones = PlayerZones()

    assert isinstance(zones.hand, FullyKnownHand)
    assert zones.card_names() == []
