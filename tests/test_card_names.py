"""Tests for card name normalization and face variants."""
import pytest

from oraclemint.utils.card_names import (
    combine_face_names,
    extract_face_names,
    is_multi_face_card_name,
    normalize_name,
    parse_card_name_variants,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Lightning Bolt", "lightning bolt"),
        ("  Lightning   Bolt  ", "lightning bolt"),
        ("Lim-Dûl's Vault", "lim-dul's vault"),
        ("Æther Vial", "æther vial"),
        ("Jötun Grunt", "jotun grunt"),
        ("Urza’s Saga", "urza's saga"),
        ("Borrowing 100,000 Arrows", "borrowing 100000 arrows"),
        ("Ach! Hans, Run!", "ach hans run"),
        ("Fire // Ice", "fire // ice"),
        ("", ""),
    ],
)
def test_normalize_name(raw, expected):
    assert normalize_name(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["Lim-Dûl's Vault", "Urza’s Saga", "  Fire  //  Ice ", "Ach! Hans, Run!", "Séance"],
)
def test_normalize_name_is_idempotent(raw):
    once = normalize_name(raw)
    assert normalize_name(once) == once


def test_variants_for_split_card():
    assert parse_card_name_variants("Fire // Ice") == ["fire // ice", "fire", "ice"]


def test_variants_for_single_face_card():
    assert parse_card_name_variants("Counterspell") == ["counterspell"]


def test_variants_drop_empty_and_duplicate_faces():
    assert parse_card_name_variants("Fire //") == ["fire //", "fire"]
    assert parse_card_name_variants("Bind // Bind") == ["bind // bind", "bind"]


def test_face_name_helpers():
    full_name = combine_face_names("Delver of Secrets", "Insectile Aberration")

    assert full_name == "Delver of Secrets // Insectile Aberration"
    assert is_multi_face_card_name(full_name)
    assert not is_multi_face_card_name("Brainstorm")
    assert extract_face_names(full_name) == ["Delver of Secrets", "Insectile Aberration"]
    assert extract_face_names("Brainstorm") == ["Brainstorm"]
