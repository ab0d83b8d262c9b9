"""
Player API router for RDFPoker.

Joining a game, editing a player, betting chips and swapping the dealer.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from models.requests import CamelModel, Int32
from services.player_service import PlayerService

router = APIRouter(prefix="/api/player", tags=["player"])


# =============================================================================
# Request Models
# =============================================================================


class PlayerCreateRequest(CamelModel):
    """Join game request."""
    game_state_id: UUID
    nick_name: Optional[str] = None
    is_dealer: bool = False


class PlayerUpdateRequest(CamelModel):
    """Partial player update; omitted fields are left alone."""
    id: UUID
    num_chips: Optional[Int32] = None
    nick_name: Optional[str] = None


class PlayerBetRequest(CamelModel):
    """Bet one chip on a card."""
    player_id: UUID
    card_id: UUID


class DealerSwapRequest(CamelModel):
    """Hand the dealer role to another player."""
    current_dealer_id: UUID
    future_dealer_id: UUID


# =============================================================================
# Dependencies
# =============================================================================

_player_service: Optional[PlayerService] = None


def set_player_service(service: PlayerService) -> None:
    """Set the player service instance (called from main.py)."""
    global _player_service
    _player_service = service


def get_player_service_dep() -> PlayerService:
    """Dependency to get player service."""
    if _player_service is None:
        raise HTTPException(status_code=503, detail="Player service not initialized")
    return _player_service


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/{player_id}")
async def get_player(
    player_id: UUID,
    service: PlayerService = Depends(get_player_service_dep),
):
    player = await service.get_player(str(player_id))
    return player.to_dict()


@router.post("")
async def create_player(
    request: PlayerCreateRequest,
    service: PlayerService = Depends(get_player_service_dep),
):
    player = await service.create_player(
        str(request.game_state_id),
        nick_name=request.nick_name,
        is_dealer=request.is_dealer,
    )
    return player.to_dict()


@router.put("")
async def update_player(
    request: PlayerUpdateRequest,
    service: PlayerService = Depends(get_player_service_dep),
):
    player = await service.update_player(
        str(request.id),
        num_chips=request.num_chips,
        nick_name=request.nick_name,
    )
    return player.to_dict()


@router.post("/bet")
async def place_bet(
    request: PlayerBetRequest,
    service: PlayerService = Depends(get_player_service_dep),
):
    player = await service.place_bet(str(request.player_id), str(request.card_id))
    return player.to_dict()


@router.post("/dealer-swap")
async def swap_dealers(
    request: DealerSwapRequest,
    service: PlayerService = Depends(get_player_service_dep),
):
    await service.swap_dealers(str(request.current_dealer_id), str(request.future_dealer_id))
    return Response(status_code=200)
