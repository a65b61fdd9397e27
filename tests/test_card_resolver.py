"""Tests for the card resolution cascade."""
import pytest
import pytest_asyncio

from oraclemint.models.cards import Ruling
from oraclemint.models.errors import ResolutionFailed
from oraclemint.models.game_state import CardReference, FullyKnownHand, PlayerZones
from oraclemint.models.resolution import ResolveStatus
from oraclemint.services.card_resolver import CardResolver, prefix_for
from oraclemint.services.rate_limiter import RetryPolicy
from payloads import card_payload, ruling_payload, seed_cards


@pytest_asyncio.fixture
async def resolver(store, fake_scryfall):
    await seed_cards(
        store,
        card_payload("Lightning Bolt"),
        card_payload("Brainstorm"),
        card_payload("Brainstone", type_line="Artifact"),
        card_payload("Fire // Ice", faces=["Fire", "Ice"]),
        card_payload(
            "Delver of Secrets // Insectile Aberration",
            faces=["Delver of Secrets", "Insectile Aberration"],
            type_line="Creature",
            layout="transform",
        ),
    )
    return CardResolver(store, fake_scryfall.client(RetryPolicy(max_attempts=2)))


def test_prefix_is_half_the_name_but_at_least_three_characters():
    assert prefix_for("lightning blot") == "lightni"
    assert prefix_for("brai") == "bra"
    assert prefix_for("ox") == "ox"


@pytest.mark.asyncio
async def test_exact_match_ignores_case_and_punctuation(resolver, fake_scryfall):
    result = await resolver.resolve("lightning BOLT!")

    assert result.status is ResolveStatus.EXACT
    assert result.card.name == "Lightning Bolt"
    assert fake_scryfall.requests == []


@pytest.mark.asyncio
async def test_full_split_name_is_exact(resolver):
    result = await resolver.resolve("Fire // Ice")

    assert result.status is ResolveStatus.EXACT
    assert result.matched_face is None


@pytest.mark.asyncio
async def test_back_face_name_is_a_face_match(resolver):
    result = await resolver.resolve("Insectile Aberration")

    assert result.status is ResolveStatus.FACE_MATCH
    assert result.card.name == "Delver of Secrets // Insectile Aberration"
    assert result.matched_face == 1


@pytest.mark.asyncio
async def test_front_face_name_is_a_face_match(resolver):
    result = await resolver.resolve("Delver of Secrets")

    assert result.status is ResolveStatus.FACE_MATCH
    assert result.matched_face == 0


@pytest.mark.asyncio
async def test_misspelled_split_name_matches_a_face(resolver):
    result = await resolver.resolve("Fyre // Ice")

    assert result.status is ResolveStatus.FACE_MATCH
    assert result.card.oracle_id == "oracle-fire-ice"
    assert result.matched_face == 1


@pytest.mark.asyncio
async def test_typo_is_never_reported_as_exact(resolver, fake_scryfall):
    fake_scryfall.route("/cards/named", json=card_payload("Lightning Bolt"))

    result = await resolver.resolve("Lightning Blot")

    assert result.status is not ResolveStatus.EXACT
    assert result.status is ResolveStatus.REMOTE_MATCH
    assert result.card.name == "Lightning Bolt"


@pytest.mark.asyncio
async def test_shared_prefix_is_ambiguous(resolver, fake_scryfall):
    result = await resolver.resolve("brai")

    assert result.status is ResolveStatus.AMBIGUOUS
    assert result.card is None
    assert sorted(candidate.name for candidate in result.candidates) == ["Brainstone", "Brainstorm"]
    assert fake_scryfall.requests == []


@pytest.mark.asyncio
async def test_remote_match_is_cached_for_the_next_lookup(resolver, fake_scryfall):
    fake_scryfall.route("/cards/named", json=card_payload("Snapcaster Mage", type_line="Creature"))
    fake_scryfall.route(
        "/cards/scry-snapcaster-mage/rulings",
        json={"object": "list", "data": [ruling_payload("oracle-snapcaster-mage", "Flashback is granted.")]},
    )

    first = await resolver.resolve("Snapcaster Mage")
    requests_after_first = len(fake_scryfall.requests)
    second = await resolver.resolve("Snapcaster Mage")

    assert first.status is ResolveStatus.REMOTE_MATCH
    assert [ruling.comment for ruling in first.card.rulings] == ["Flashback is granted."]
    assert second.status is ResolveStatus.EXACT
    assert second.card.oracle_id == first.card.oracle_id
    assert len(fake_scryfall.requests) == requests_after_first


@pytest.mark.asyncio
async def test_rulings_failure_still_caches_card(resolver, fake_scryfall, store):
    fake_scryfall.route("/cards/named", json=card_payload("Snapcaster Mage"))
    fake_scryfall.route("/cards/scry-snapcaster-mage/rulings", status=500)

    result = await resolver.resolve("Snapcaster Mage")

    assert result.status is ResolveStatus.REMOTE_MATCH
    assert result.card.rulings == []
    assert await store.card_exists("oracle-snapcaster-mage")


@pytest.mark.asyncio
async def test_refetch_with_no_rulings_clears_stale_rulings(resolver, fake_scryfall, store):
    await store.replace_rulings(
        "oracle-lightning-bolt", [Ruling(**ruling_payload("oracle-lightning-bolt", "Old ruling."))]
    )
    # Scryfall's fuzzy match maps a nickname onto a card that is already cached
    fake_scryfall.route("/cards/named", json=card_payload("Lightning Bolt"))
    fake_scryfall.route("/cards/scry-lightning-bolt/rulings", json={"object": "list", "data": []})

    result = await resolver.resolve("Bolt")

    assert result.status is ResolveStatus.REMOTE_MATCH
    assert result.card.rulings == []
    assert (await store.get_card("oracle-lightning-bolt")).rulings == []


@pytest.mark.asyncio
async def test_remote_miss_is_not_found(resolver, fake_scryfall):
    result = await resolver.resolve("Xyzzy Plugh")

    assert result.status is ResolveStatus.NOT_FOUND
    assert result.card is None
    assert fake_scryfall.calls("/cards/named") == 1


@pytest.mark.asyncio
async def test_remote_failure_raises_resolution_failed(resolver, fake_scryfall):
    fake_scryfall.route("/cards/named", status=503)

    with pytest.raises(ResolutionFailed) as excinfo:
        await resolver.resolve("Xyzzy Plugh")

    assert excinfo.value.name == "Xyzzy Plugh"


@pytest.mark.asyncio
async def test_resolve_many_keeps_order_and_resolves_duplicates_once(resolver, fake_scryfall):
    fake_scryfall.route("/cards/named", json=card_payload("Snapcaster Mage"))

    results = await resolver.resolve_many(["Snapcaster Mage", "Ice", "Snapcaster Mage", "Brainstorm"])

    assert [result.status for result in results] == [
        ResolveStatus.REMOTE_MATCH,
        ResolveStatus.FACE_MATCH,
        ResolveStatus.REMOTE_MATCH,
        ResolveStatus.EXACT,
    ]
    assert fake_scryfall.calls("/cards/named") == 1


@pytest.mark.asyncio
async def test_resolve_zones_follows_zone_order(resolver, fake_scryfall):
    zones = PlayerZones(
        battlefield=[CardReference(name="Brainstorm")],
        hand=FullyKnownHand(cards=[CardReference(name="Fire"), CardReference(name="Brainstorm")]),
        command_zone=[CardReference(name="Delver of Secrets")],
    )

    results = await resolver.resolve_zones(zones)

    assert [result.input for result in results] == ["Brainstorm", "Fire", "Delver of Secrets"]
    assert [result.status for result in results] == [
        ResolveStatus.EXACT,
        ResolveStatus.FACE_MATCH,
        ResolveStatus.FACE_MATCH,
    ]
    assert fake_scryfall.requests == []


@pytest.mark.asyncio
async def test_autocomplete_lists_prefix_hits_before_contains_hits(resolver, store):
    await seed_cards(store, card_payload("Mind Brain"), card_payload("Brain Freeze"))

    results = await resolver.autocomplete_cards("brain", 10)

    assert [candidate.name for candidate in results] == ["Brain Freeze", "Brainstone", "Brainstorm", "Mind Brain"]


@pytest.mark.asyncio
async def test_autocomplete_respects_limit_and_min_length(resolver, store):
    await seed_cards(store, card_payload("Mind Brain"))

    assert len(await resolver.autocomplete_cards("brain", 2)) == 2
    assert await resolver.autocomplete_cards("b", 10) == []
