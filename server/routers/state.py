"""
Game state API router for RDFPoker.

Creates games, reports their phase, turn and table, and advances phases.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from models.events import turn_payload
from models.requests import CamelModel
from services.game_state_service import GameStateService

router = APIRouter(prefix="/api/state", tags=["state"])


# =============================================================================
# Request Models
# =============================================================================


class GameStateAdvanceRequest(CamelModel):
    """Advance phase request."""
    id: UUID
    phase_string: str


# =============================================================================
# Dependencies
# =============================================================================

_game_state_service: Optional[GameStateService] = None


def set_game_state_service(service: GameStateService) -> None:
    """Set the game state service instance (called from main.py)."""
    global _game_state_service
    _game_state_service = service


def get_game_state_service_dep() -> GameStateService:
    """Dependency to get game state service."""
    if _game_state_service is None:
        raise HTTPException(status_code=503, detail="Game state service not initialized")
    return _game_state_service


# =============================================================================
# Endpoints
# =============================================================================


@router.post("")
async def create_game(service: GameStateService = Depends(get_game_state_service_dep)):
    game_state = await service.create_game()
    return {"gameStateId": game_state.id}


@router.put("")
async def advance_phase(
    request: GameStateAdvanceRequest,
    service: GameStateService = Depends(get_game_state_service_dep),
):
    await service.advance_phase(str(request.id), request.phase_string)
    return Response(status_code=200)


@router.get("/phase/{game_state_id}")
async def get_phase(
    game_state_id: UUID,
    service: GameStateService = Depends(get_game_state_service_dep),
):
    phase = await service.get_phase(str(game_state_id))
    return {"phase": phase.value}


@router.get("/turn/{game_state_id}")
async def get_turn(
    game_state_id: UUID,
    service: GameStateService = Depends(get_game_state_service_dep),
):
    player = await service.get_turn(str(game_state_id))
    return turn_payload(player)


@router.get("/playedCards/{game_state_id}")
async def get_played_cards(
    game_state_id: UUID,
    service: GameStateService = Depends(get_game_state_service_dep),
):
    cards = await service.get_played_cards(str(game_state_id))
    return [card.to_dict() for card in cards]


@router.get("/{game_state_id}")
async def get_state(
    game_state_id: UUID,
    service: GameStateService = Depends(get_game_state_service_dep),
):
    snapshot = await service.get_state(str(game_state_id))
    return snapshot.to_dict()
