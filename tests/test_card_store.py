"""Tests for the SQLite card store."""
from datetime import date, datetime, timedelta, timezone

import pytest

from oraclemint.models.cards import Ruling
from oraclemint.models.sync import SyncRun, SyncStatus, SyncType
from payloads import card_from_payload, card_payload, seed_cards


@pytest.mark.asyncio
async def test_upsert_and_load_card_with_faces(store):
    await seed_cards(store, card_payload("Fire // Ice", faces=["Fire", "Ice"]))

    card = await store.get_card("oracle-fire-ice")

    assert card.name == "Fire // Ice"
    assert card.normalized_name == "fire // ice"
    assert [(face.face_index, face.name) for face in card.faces] == [(0, "Fire"), (1, "Ice")]
    assert card.released_at == date(2020, 1, 1)
    assert await store.find_face("ice") == ("oracle-fire-ice", 1)
    assert await store.find_face("fire // ice") is None


@pytest.mark.asyncio
async def test_upsert_replaces_the_whole_face_set(store):
    await seed_cards(store, card_payload("Fire // Ice", faces=["Fire", "Ice"]))
    await seed_cards(store, card_payload("Fire // Ice", faces=["Fire"]))

    card = await store.get_card("oracle-fire-ice")

    assert [face.name for face in card.faces] == ["Fire"]
    assert await store.find_face("ice") is None
    assert await store.count_cards() == 1


@pytest.mark.asyncio
async def test_rulings_are_replaced_per_card(store):
    await seed_cards(store, card_payload("Opt"))
    first = [
        Ruling(oracle_id="oracle-opt", source="wotc", published_at=date(2020, 1, 1), comment="Old ruling."),
        Ruling(oracle_id="oracle-opt", source="wotc", published_at=date(2020, 2, 1), comment="Older ruling."),
    ]
    await store.replace_rulings("oracle-opt", first)
    await store.replace_rulings(
        "oracle-opt",
        [Ruling(oracle_id="oracle-opt", source="scryfall", published_at=date(2023, 5, 1), comment="New ruling.")],
    )

    card = await store.get_card("oracle-opt")

    assert [ruling.comment for ruling in card.rulings] == ["New ruling."]


@pytest.mark.asyncio
async def test_lookup_by_normalized_name(store):
    await seed_cards(store, card_payload("Lim-Dûl's Vault"))

    card = await store.get_card_by_normalized_name("lim-dul's vault")

    assert card.oracle_id == "oracle-lim-d-l-s-vault"
    assert await store.get_card_by_normalized_name("lim dul vault") is None


@pytest.mark.asyncio
async def test_prefix_and_contains_candidates(store):
    await seed_cards(
        store,
        card_payload("Brainstorm"),
        card_payload("Brainstone", type_line="Artifact"),
        card_payload("Mind Brain"),
        card_payload("Counterspell"),
    )

    prefix = await store.find_candidates_by_prefix("brain", 10)
    contains = await store.find_candidates_containing("brain", 10, exclude_prefix="brain")

    assert [candidate.name for candidate in prefix] == ["Brainstone", "Brainstorm"]
    assert prefix[0].type_line == "Artifact"
    assert [candidate.name for candidate in contains] == ["Mind Brain"]
    assert len(await store.find_candidates_by_prefix("brain", 1)) == 1


@pytest.mark.asyncio
async def test_prefix_scan_treats_underscore_literally(store):
    await seed_cards(store, card_payload("_____ Goblin"), card_payload("Abc Goblin"))

    matches = await store.find_candidates_by_prefix("___", 10)

    assert [candidate.name for candidate in matches] == ["_____ Goblin"]


@pytest.mark.asyncio
async def test_get_cards_and_existence(store):
    await seed_cards(store, card_payload("Opt"), card_payload("Shock"))

    cards = await store.get_cards(["oracle-shock", "oracle-opt", "oracle-missing"])

    assert [card.name for card in cards] == ["Opt", "Shock"]
    assert await store.card_exists("oracle-opt")
    assert not await store.card_exists("oracle-missing")
    assert await store.get_cards([]) == []


@pytest.mark.asyncio
async def test_sync_run_round_trip(store):
    started = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    run = await store.create_sync_run(
        SyncRun(id="run-1", type=SyncType.ORACLE_CARDS, status=SyncStatus.DOWNLOADING, started_at=started)
    )
    run.status = SyncStatus.PAUSED
    run.processed = 1500
    run.last_oracle_id = "oracle-opt"
    run.blob_url = "https://data.scryfall.test/oracle_cards.json"
    await store.save_sync_run(run)

    loaded = await store.get_sync_run("run-1")

    assert loaded.status is SyncStatus.PAUSED
    assert loaded.processed == 1500
    assert loaded.last_oracle_id == "oracle-opt"
    assert loaded.started_at == started
    assert await store.get_sync_run("missing") is None


@pytest.mark.asyncio
async def test_latest_completed_run_orders_by_completion(store):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for index, status in enumerate([SyncStatus.COMPLETED, SyncStatus.COMPLETED, SyncStatus.FAILED]):
        run = await store.create_sync_run(
            SyncRun(id=f"run-{index}", type=SyncType.ORACLE_CARDS, status=SyncStatus.DOWNLOADING,
                    started_at=base + timedelta(hours=index))
        )
        run.status = status
        if status is SyncStatus.COMPLETED:
            run.completed_at = base + timedelta(hours=index, minutes=30)
        await store.save_sync_run(run)

    latest_completed = await store.get_latest_sync_run(SyncType.ORACLE_CARDS, SyncStatus.COMPLETED)
    latest_any = await store.get_latest_sync_run(SyncType.ORACLE_CARDS)

    assert latest_completed.id == "run-1"
    assert latest_any.id == "run-2"
    assert await store.get_latest_sync_run(SyncType.RULINGS) is None


def test_stored_card_normalized_name_follows_name():
    card = card_from_payload(card_payload("Urza’s Saga"))

    assert card.normalized_name == "urza's saga"
