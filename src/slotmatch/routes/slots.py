"""Slot routes: availability windows, gated by the conflict checker."""

import logging

from fastapi import APIRouter, Depends, status

from slotmatch.database import Database
from slotmatch.dependencies import get_db
from slotmatch.errors import ConflictError, NotFoundError
from slotmatch.models import SlotCreate, SlotDelete, SlotUpdate
from slotmatch.recorder import record_history
from slotmatch.scheduling import group_by_day, normalize_slot_bounds, window_bounds, window_days

log = logging.getLogger(__name__)

router = APIRouter()


def _require_user(db: Database, user_id: int) -> dict:
    user = db.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found.")
    return user


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_slot(req: SlotCreate, db: Database = Depends(get_db)):
    bounds = normalize_slot_bounds(req.model_dump())
    user = _require_user(db, req.user_id)

    slot = db.create_slot_if_free({**req.model_dump(), **bounds, "active": True})
    if slot is None:
        raise ConflictError("User already has a slot in this time range. Please choose another time.")

    log.info("Created slot %s for user %s", slot["id"], user["id"])
    record_history(db, "Create", "Slot", f"User {user['name']} creates a new slot.")
    return {"message": "Slot created successfully.", "slot": slot}


@router.get("/allslot")
async def list_slots(db: Database = Depends(get_db)):
    return db.list_slots()


@router.get("/single/{slot_id}")
async def get_slot(slot_id: int, db: Database = Depends(get_db)):
    slot = db.get_slot(slot_id)
    if not slot:
        raise NotFoundError("Slot not found.")
    return slot


@router.get("/user/{user_id}")
async def list_user_slots(user_id: int, db: Database = Depends(get_db)):
    slots = db.list_slots_by_user(user_id)
    if not slots:
        raise NotFoundError("No slots found for this user.")
    return slots


@router.put("/update")
async def update_slot(req: SlotUpdate, db: Database = Depends(get_db)):
    bounds = normalize_slot_bounds(req.model_dump())
    if not db.get_slot(req.id):
        raise NotFoundError("Slot not found.")
    user = _require_user(db, req.user_id)

    slot = db.update_slot_if_free(req.id, {**req.model_dump(exclude={"id"}), **bounds})
    if slot is None:
        raise ConflictError(
            "The updated slot time conflicts with another active slot. Please choose a different time."
        )

    record_history(db, "Update", "Slot", f"User {user['name']} updates a slot.")
    return {"message": "Slot updated successfully.", "slot": slot}


@router.put("/delete")
async def delete_slot(req: SlotDelete, db: Database = Depends(get_db)):
    """Deactivate a slot; inactive slots no longer take part in conflict checks."""
    slot = db.get_slot(req.id)
    if not slot:
        raise NotFoundError("Slot not found.")
    db.set_slot_active(req.id, False)

    owner = db.get_user_by_id(slot["user_id"]) or {}
    record_history(db, "Delete", "Slot", f"User {owner.get('name', slot['user_id'])} deactivates a slot.")
    return {"message": "Slot deactivated successfully.", "slot": db.get_slot(req.id)}


@router.get("/date/{date}/user/{user_id}")
async def slots_for_week(date: str, user_id: int, db: Database = Depends(get_db)):
    """The user's slots for the 7 days starting at *date*, grouped by start day."""
    days = window_days(date)
    start, end = window_bounds(date)
    slots = db.list_slots_between(user_id, start, end)
    return {
        "message": "Slots fetched successfully.",
        "grouped_slots": group_by_day(slots, "start_date", days),
    }
