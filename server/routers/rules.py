"""
Rules API router for RDFPoker.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from models.requests import CamelModel, Int32
from services.rules_service import RulesService

router = APIRouter(prefix="/api/rules", tags=["rules"])


class RulesUpdateRequest(CamelModel):
    """Partial rules update; omitted fields are left alone."""
    game_state_id: UUID
    prompt: Optional[str] = None
    max_cards_in_hand: Optional[Int32] = None
    chips_allotted_per_player: Optional[Int32] = None
    preparation_timer_duration: Optional[Int32] = None
    turn_timer_duration: Optional[Int32] = None
    betting_timer_duration: Optional[Int32] = None
    min_chips_for_card_post_game_discussion: Optional[Int32] = None
    min_card_contribution: Optional[Int32] = None


_rules_service: Optional[RulesService] = None


def set_rules_service(service: RulesService) -> None:
    """Set the rules service instance (called from main.py)."""
    global _rules_service
    _rules_service = service


def get_rules_service_dep() -> RulesService:
    """Dependency to get rules service."""
    if _rules_service is None:
        raise HTTPException(status_code=503, detail="Rules service not initialized")
    return _rules_service


@router.get("/{game_state_id}")
async def get_rules(
    game_state_id: UUID,
    service: RulesService = Depends(get_rules_service_dep),
):
    rules = await service.get_rules(str(game_state_id))
    return rules.to_dict()


@router.put("")
async def update_rules(
    request: RulesUpdateRequest,
    service: RulesService = Depends(get_rules_service_dep),
):
    changes = request.model_dump(exclude={"game_state_id"}, exclude_none=True)
    rules = await service.update_rules(str(request.game_state_id), **changes)
    return rules.to_dict()
