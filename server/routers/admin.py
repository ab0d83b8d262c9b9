"""
Admin API router for RDFPoker.

Lists every game with its rules, players and cards. main.py only mounts
this router when ADMIN_ENDPOINTS_ENABLED is set.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from services.game_state_service import GameStateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# Set by main.py during startup
_game_state_service: Optional[GameStateService] = None


def set_admin_service(service: GameStateService) -> None:
    """Set the service backing the admin listing (called from main.py)."""
    global _game_state_service
    _game_state_service = service


def get_admin_service_dep() -> GameStateService:
    """Dependency to get the admin listing service."""
    if _game_state_service is None:
        raise HTTPException(status_code=503, detail="Admin service not initialized")
    return _game_state_service


@router.get("/states")
async def list_states(service: GameStateService = Depends(get_admin_service_dep)):
    """Every game in the store, oldest first."""
    states = await service.list_states()
    logger.info(f"Admin listed {len(states)} game states")
    return [state.to_dict() for state in states]
