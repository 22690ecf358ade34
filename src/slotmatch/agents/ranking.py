"""Ranking Agent: orders meetings for a host and slots for a guest via the LLM."""

from __future__ import annotations

import logging

from slotmatch.config import Config
from slotmatch.database import Database
from slotmatch.errors import NotFoundError, ValidationError
from slotmatch.llm import rank
from slotmatch.prompts import build_guest_match_prompt, build_host_relevance_prompt

log = logging.getLogger(__name__)

HOST_RELEVANCE_MAX_TOKENS = 200
GUEST_MATCH_MAX_TOKENS = 500


def rank_meetings_for_slot(cfg: Config, db: Database, slot_id: int) -> list:
    """Score the meetings booked on a slot by relevance to the slot owner's profession.

    Returns the model's ``[{"id", "relevance"}, ...]`` array unchanged, or
    ``[]`` without calling the model when the slot has no meetings.
    """
    slot = db.get_slot(slot_id)
    if not slot:
        raise NotFoundError(f"Slot with ID {slot_id} not found")
    host = db.get_user_by_id(slot["user_id"])
    if not host:
        raise NotFoundError(f"Owner of slot {slot_id} not found")

    meetings = db.list_meetings_by_slot(slot_id)
    if not meetings:
        return []

    prompt = build_host_relevance_prompt(
        host.get("profession") or "",
        [{"id": m["id"], "description": m.get("description", "")} for m in meetings],
    )
    ranking = rank(cfg, prompt, max_tokens=HOST_RELEVANCE_MAX_TOKENS)
    log.info("Ranked %d meetings for slot %s", len(meetings), slot_id)
    return ranking


def rank_slots_for_guest(cfg: Config, db: Database, user_id: int | None, text: str) -> list:
    """Order every active slot of every other host by fit to the guest's request.

    Returns the model's ``[{"slotId", "hostId"}, ...]`` array unchanged, or
    ``[]`` without calling the model when no other user has an active slot.
    """
    if not user_id or not (text or "").strip():
        raise ValidationError("User ID and text are required")

    hosts = db.list_hosts_with_active_slots(exclude_user_id=user_id)
    if not hosts:
        return []

    prompt = build_guest_match_prompt(text, hosts)
    ranking = rank(cfg, prompt, max_tokens=GUEST_MATCH_MAX_TOKENS)
    log.info(
        "Ranked %d slots across %d hosts for user %s",
        sum(len(h["slots"]) for h in hosts), len(hosts), user_id,
    )
    return ranking
