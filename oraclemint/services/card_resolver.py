"""Card resolution logic.

Resolves free-text card names through a cascade of increasingly expensive
strategies: exact normalized name, face name (split/DFC/adventure cards),
prefix scan for typos, and finally a fuzzy Scryfall lookup whose result
is cached in the store.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from oraclemint.constants import (
    AUTOCOMPLETE_DEFAULT_LIMIT,
    AUTOCOMPLETE_MIN_QUERY_LENGTH,
    PREFIX_CANDIDATE_LIMIT,
    PREFIX_MIN_LENGTH,
)
from oraclemint.models.cards import Card, CardCandidate, Ruling
from oraclemint.models.errors import ResolutionFailed, ScryfallError
from oraclemint.models.game_state import PlayerZones
from oraclemint.models.resolution import ResolveResult
from oraclemint.services.card_store import CardStore, get_card_store
from oraclemint.services.scryfall import ScryfallClient, get_scryfall_client
from oraclemint.utils.card_names import normalize_name, parse_card_name_variants

logger = logging.getLogger(__name__)


def prefix_for(normalized: str) -> str:
    """Prefix used by the typo scan: half the name, but never under 3 characters."""
    return normalized[: max(PREFIX_MIN_LENGTH, len(normalized) // 2)]


class CardResolver:
    """Resolve card names against the local store with a Scryfall fallback."""

    def __init__(self, store: CardStore, client: ScryfallClient):
        self.store = store
        self.client = client

    async def resolve(self, name: str) -> ResolveResult:
        """Resolve a single card name to its stored card.

        Raises ``ResolutionFailed`` when the Scryfall fallback cannot be
        completed; a confirmed miss is a ``not_found`` result instead.
        """
        variants = parse_card_name_variants(name)
        primary = variants[0]

        # 1. Exact match on the full normalized name
        card = await self.store.get_card_by_normalized_name(primary)
        if card:
            return ResolveResult.exact(name, card)

        # 2. Face names (split, DFC, adventure); the bare primary may itself be a front face
        for variant in variants:
            face = await self.store.find_face(variant)
            if face:
                oracle_id, face_index = face
                card = await self.store.get_card(oracle_id)
                if card:
                    return ResolveResult.face_match(name, card, face_index)

        # 3. Prefix scan for potential typos
        if primary:
            candidates = await self.store.find_candidates_by_prefix(prefix_for(primary), PREFIX_CANDIDATE_LIMIT)
            result = await self._match_candidates(name, primary, candidates)
            if result:
                return result

        # 4. Fall back to Scryfall
        return await self._fetch_and_cache(name)

    async def _match_candidates(
        self, name: str, primary: str, candidates: List[CardCandidate]
    ) -> Optional[ResolveResult]:
        if not candidates:
            return None

        exact_candidate = next(
            (candidate for candidate in candidates if normalize_name(candidate.name) == primary),
            None,
        )
        if exact_candidate:
            card = await self.store.get_card(exact_candidate.oracle_id)
            if card:
                return ResolveResult.normalized(name, card)

        if len(candidates) > 1:
            logger.info(f"'{name}' is ambiguous between {len(candidates)} cards")
            return ResolveResult.ambiguous(name, candidates)

        return None

    async def _fetch_and_cache(self, name: str) -> ResolveResult:
        """Fetch a card from Scryfall and cache it, with its rulings, in the store."""
        try:
            scryfall_card = await self.client.get_card_by_name(name, fuzzy=True)
        except ScryfallError as exc:
            logger.error(f"Scryfall lookup failed for '{name}': {exc.message}")
            raise ResolutionFailed(name, exc) from exc

        if scryfall_card is None:
            logger.info(f"No Scryfall match for '{name}'")
            return ResolveResult.not_found(name)

        await self.store.upsert_card(Card.from_scryfall(scryfall_card))
        logger.info(f"Cached '{scryfall_card.name}' from Scryfall for input '{name}'")

        try:
            rulings = await self.client.get_rulings_by_card_id(scryfall_card.id)
            await self.store.replace_rulings(
                scryfall_card.oracle_id,
                [Ruling(**ruling.model_dump()) for ruling in rulings],
            )
        except ScryfallError as exc:
            logger.warning(f"Failed to fetch rulings for {scryfall_card.name}: {exc.message}")

        card = await self.store.get_card(scryfall_card.oracle_id)
        return ResolveResult.remote_match(name, card)

    async def resolve_many(self, names: Sequence[str]) -> List[ResolveResult]:
        """Resolve names in order; a name repeated in the batch is resolved once."""
        memo: Dict[str, ResolveResult] = {}
        results: List[ResolveResult] = []

        for name in names:
            if name not in memo:
                memo[name] = await self.resolve(name)
            results.append(memo[name])

        return results

    async def resolve_zones(self, zones: PlayerZones) -> List[ResolveResult]:
        """Resolve every card a player's zones reference, once each, in zone order."""
        return await self.resolve_many(zones.card_names())

    async def autocomplete_cards(self, query: str, limit: int = AUTOCOMPLETE_DEFAULT_LIMIT) -> List[CardCandidate]:
        """Autocomplete card names from the local store.

        Prefix matches come first (faster, more relevant), then names that
        merely contain the query.
        """
        if len(query) < AUTOCOMPLETE_MIN_QUERY_LENGTH:
            return []

        normalized = normalize_name(query)
        if not normalized:
            return []

        prefix_matches = await self.store.find_candidates_by_prefix(normalized, limit)
        if len(prefix_matches) >= limit:
            return prefix_matches

        contains_matches = await self.store.find_candidates_containing(
            normalized, limit - len(prefix_matches), exclude_prefix=normalized
        )
        return prefix_matches + contains_matches

    async def get_card(self, oracle_id: str) -> Optional[Card]:
        return await self.store.get_card(oracle_id)

    async def get_cards(self, oracle_ids: Sequence[str]) -> List[Card]:
        return await self.store.get_cards(oracle_ids)


# Global singleton instance
_card_resolver: Optional[CardResolver] = None


def get_card_resolver() -> CardResolver:
    """Get the global card resolver instance."""
    global _card_resolver
    if _card_resolver is None:
        _card_resolver = CardResolver(get_card_store(), get_scryfall_client())
    return _card_resolver
