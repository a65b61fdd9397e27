"""Card resolution, autocomplete and lookup routes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from oraclemint.constants import AUTOCOMPLETE_DEFAULT_LIMIT, AUTOCOMPLETE_MAX_LIMIT, RESOLVE_MAX_NAMES
from oraclemint.models import (
    AutocompleteResponse,
    Card,
    ResolutionFailed,
    ResolvedCard,
    PlayerZones,
    ResolveRequest,
    ResolveResponse,
    ScryfallError,
    SuggestionResponse,
)
from oraclemint.services.card_resolver import CardResolver, get_card_resolver
from oraclemint.services.scryfall import ScryfallClient, get_scryfall_client

router = APIRouter(prefix="/api/v1/cards", tags=["cards"])
logger = logging.getLogger(__name__)


@router.post("/resolve", response_model=ResolveResponse)
async def resolve_cards(
    request: ResolveRequest,
    resolver: CardResolver = Depends(get_card_resolver),
) -> ResolveResponse:
    """Resolve free-text card names to stored cards, in input order."""
    try:
        results = await resolver.resolve_many(request.names)
    except ResolutionFailed as exc:
        logger.error(f"Resolution failed: {exc.message}")
        raise HTTPException(status_code=502, detail=exc.message)

    return _resolve_response(results)


@router.post("/resolve-zones", response_model=ResolveResponse)
async def resolve_zones(
    zones: PlayerZones,
    resolver: CardResolver = Depends(get_card_resolver),
) -> ResolveResponse:
    """Resolve the cards referenced by one player's zones."""
    if len(zones.card_names()) > RESOLVE_MAX_NAMES:
        raise HTTPException(status_code=422, detail=f"At most {RESOLVE_MAX_NAMES} distinct cards per request")

    try:
        results = await resolver.resolve_zones(zones)
    except ResolutionFailed as exc:
        logger.error(f"Resolution failed: {exc.message}")
        raise HTTPException(status_code=502, detail=exc.message)

    return _resolve_response(results)


def _resolve_response(results) -> ResolveResponse:
    return ResolveResponse(
        resolved=[
            ResolvedCard(
                input=result.input,
                status=result.status,
                card=result.card,
                matched_face=result.matched_face,
                candidates=result.candidates,
            )
            for result in results
        ]
    )


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def autocomplete_cards(
    q: str = Query(..., description="Partial card name"),
    limit: int = Query(AUTOCOMPLETE_DEFAULT_LIMIT, ge=1, description="Maximum suggestions"),
    resolver: CardResolver = Depends(get_card_resolver),
) -> AutocompleteResponse:
    """Suggest card names from the local cache."""
    results = await resolver.autocomplete_cards(q, min(limit, AUTOCOMPLETE_MAX_LIMIT))
    return AutocompleteResponse(results=results)


@router.get("/suggest", response_model=SuggestionResponse)
async def suggest_card_names(
    q: str = Query(..., description="Partial card name"),
    client: ScryfallClient = Depends(get_scryfall_client),
) -> SuggestionResponse:
    """Suggest card names from Scryfall's autocomplete."""
    try:
        suggestions = await client.autocomplete(q)
    except ScryfallError as exc:
        logger.error(f"Scryfall autocomplete failed for '{q}': {exc.message}")
        raise HTTPException(status_code=502, detail=exc.message)

    return SuggestionResponse(object="list", data=suggestions)


@router.get("/{oracle_id}", response_model=Card)
async def get_card(
    oracle_id: str,
    resolver: CardResolver = Depends(get_card_resolver),
) -> Card:
    """Get a card with its faces and rulings by oracle id."""
    card = await resolver.get_card(oracle_id)
    if card is None:
        raise HTTPException(status_code=404, detail=f"Card {oracle_id} not found")
    return card
