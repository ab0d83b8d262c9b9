"""
Card API router for RDFPoker.

Adding, editing, deleting and playing cards.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from models.game_state import CardStatus
from models.requests import CamelModel, Int32
from services.card_service import CardService

router = APIRouter(prefix="/api/card", tags=["card"])


# =============================================================================
# Request Models
# =============================================================================


class CardAddRequest(CamelModel):
    """Add card request."""
    player_id: UUID


class CardUpdateRequest(CamelModel):
    """Partial card update; omitted fields are left alone."""
    id: UUID
    content: Optional[str] = None
    card_status: Optional[CardStatus] = None
    num_chips: Optional[Int32] = None


class CardPlayRequest(CamelModel):
    """Play card request."""
    id: UUID


# =============================================================================
# Dependencies
# =============================================================================

_card_service: Optional[CardService] = None


def set_card_service(service: CardService) -> None:
    """Set the card service instance (called from main.py)."""
    global _card_service
    _card_service = service


def get_card_service_dep() -> CardService:
    """Dependency to get card service."""
    if _card_service is None:
        raise HTTPException(status_code=503, detail="Card service not initialized")
    return _card_service


# =============================================================================
# Endpoints
# =============================================================================


@router.post("")
async def add_card(
    request: CardAddRequest,
    service: CardService = Depends(get_card_service_dep),
):
    card = await service.add_card(str(request.player_id))
    return {
        "id": card.id,
        "content": card.content,
        "cardStatus": card.card_status.value,
        "numChips": card.num_chips,
        "playerId": card.player_id,
    }


@router.put("")
async def update_card(
    request: CardUpdateRequest,
    service: CardService = Depends(get_card_service_dep),
):
    card = await service.update_card(
        str(request.id),
        content=request.content,
        card_status=request.card_status,
        num_chips=request.num_chips,
    )
    return card.to_dict()


@router.delete("/{card_id}")
async def delete_card(
    card_id: UUID,
    service: CardService = Depends(get_card_service_dep),
):
    await service.delete_card(str(card_id))
    return Response(status_code=200)


@router.post("/play")
async def play_card(
    request: CardPlayRequest,
    service: CardService = Depends(get_card_service_dep),
):
    await service.play_card(str(request.id))
    return Response(status_code=200)
