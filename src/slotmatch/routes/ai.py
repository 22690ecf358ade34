"""Ranking routes: LLM relevance for hosts and slot matching for guests."""

import asyncio

from fastapi import APIRouter, Depends

from slotmatch.agents.ranking import rank_meetings_for_slot, rank_slots_for_guest
from slotmatch.config import Config
from slotmatch.database import Database
from slotmatch.dependencies import get_config, get_db
from slotmatch.models import GuestMatchRequest

router = APIRouter()


@router.post("/body/{slot_id}")
async def rank_slot_meetings(
    slot_id: int,
    cfg: Config = Depends(get_config),
    db: Database = Depends(get_db),
):
    """Meetings on the slot, most relevant to the host's profession first."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, rank_meetings_for_slot, cfg, db, slot_id)


@router.post("/guest")
async def rank_guest_slots(
    req: GuestMatchRequest,
    cfg: Config = Depends(get_config),
    db: Database = Depends(get_db),
):
    """Every other host's active slots, best match for the guest's text first."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, rank_slots_for_guest, cfg, db, req.user_id, req.text)
