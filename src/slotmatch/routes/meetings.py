"""Meeting routes: booking against slots, guests, status changes."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, status

from slotmatch.config import Config
from slotmatch.database import Database
from slotmatch.dependencies import get_config, get_db
from slotmatch.errors import ConflictError, NotFoundError, ValidationError
from slotmatch.models import MeetingCreate, MeetingStatus
from slotmatch.recorder import notify_user, record_history
from slotmatch.scheduling import group_by_day, normalize_instant, window_bounds, window_days

log = logging.getLogger(__name__)

router = APIRouter()


async def _attach_guests(db: Database, meeting_id: int, guest_ids: list[int]) -> tuple[list[int], list[int]]:
    """Link guests concurrently. Failed links are logged and left out; nothing is rolled back."""
    loop = asyncio.get_running_loop()
    unique_ids = list(dict.fromkeys(guest_ids))
    results = await asyncio.gather(
        *(loop.run_in_executor(None, db.insert_meeting_guest, meeting_id, gid) for gid in unique_ids),
        return_exceptions=True,
    )
    attached, failed = [], []
    for gid, result in zip(unique_ids, results):
        if isinstance(result, Exception):
            log.warning("Failed to attach guest %s to meeting %s: %s", gid, meeting_id, result)
            failed.append(gid)
        else:
            attached.append(gid)
    return attached, failed


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_meeting(
    req: MeetingCreate,
    cfg: Config = Depends(get_config),
    db: Database = Depends(get_db),
):
    date = normalize_instant(req.date, "date")
    start_time = normalize_instant(req.start_time, "start_time") if req.start_time else None
    end_time = normalize_instant(req.end_time, "end_time") if req.end_time else None

    if db.find_meeting_by_tuple(req.description, date, req.slot_id, req.host_id):
        raise ConflictError("Meeting with similar details already exists.")

    host = db.get_user_by_id(req.host_id)
    if not host:
        raise NotFoundError("Host not found.")
    if not db.get_slot(req.slot_id):
        raise NotFoundError("Slot not found.")

    meeting_id = db.insert_meeting({
        "description": req.description,
        "date": date,
        "slot_id": req.slot_id,
        "host_id": req.host_id,
        "status": MeetingStatus.PENDING.value,
        "start_time": start_time,
        "end_time": end_time,
    })
    _, failed = await _attach_guests(db, meeting_id, req.guest_ids)

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(
        None, notify_user, cfg, db, host,
        "New meeting request",
        f"A new meeting was booked for {date}: {req.description}",
        True,
    )
    record_history(db, "Create", "Meeting", f"User {host['name']} creates a new meeting.")

    return {
        "message": "Meeting created successfully.",
        "meeting": db.get_meeting(meeting_id),
        "failed_guest_ids": failed,
    }


@router.get("/allmeet")
async def list_meetings(db: Database = Depends(get_db)):
    return db.list_meetings()


@router.get("/single/{meeting_id}")
async def get_meeting(meeting_id: int, db: Database = Depends(get_db)):
    meeting = db.get_meeting(meeting_id)
    if not meeting:
        raise NotFoundError("Meeting not found.")
    return meeting


@router.get("/user/{host_id}")
async def list_host_meetings(host_id: int, db: Database = Depends(get_db)):
    return db.list_meetings_by_host(host_id)


@router.delete("/del/{meeting_id}")
async def delete_meeting(meeting_id: int, db: Database = Depends(get_db)):
    meeting = db.get_meeting(meeting_id)
    if not meeting:
        raise NotFoundError("Meeting not found.")
    host = db.get_user_by_id(meeting["host_id"]) or {}

    db.delete_meeting(meeting_id)
    record_history(db, "Delete", "Meeting", f"User {host.get('name', meeting['host_id'])} deletes a meeting.")
    return {"message": "Meeting and guests deleted successfully."}


@router.get("/date/{date}/user/{user_id}")
async def meetings_for_week(date: str, user_id: int, db: Database = Depends(get_db)):
    """Meetings hosted by the user over the 7 days starting at *date*, grouped by day."""
    days = window_days(date)
    start, end = window_bounds(date)
    meetings = db.list_meetings_between(user_id, start, end)
    return {
        "message": "Meetings fetched successfully.",
        "grouped_meetings": group_by_day(meetings, "date", days),
    }


@router.put("/status/{new_status}/id/{meeting_id}")
async def change_meeting_status(
    new_status: int,
    meeting_id: int,
    cfg: Config = Depends(get_config),
    db: Database = Depends(get_db),
):
    """Set a meeting's status. Any status may move to any other."""
    if new_status not in {s.value for s in MeetingStatus}:
        raise ValidationError("Invalid status. Valid values are: 0 (Cancelled), 1 (Pending), 2 (Completed).")

    meeting = db.get_meeting(meeting_id)
    if not meeting:
        raise NotFoundError("Meeting not found.")
    host = db.get_user_by_id(meeting["host_id"]) or {"id": meeting["host_id"], "name": ""}

    db.update_meeting_status(meeting_id, new_status)
    label = MeetingStatus(new_status).label
    notify_user(cfg, db, host, f"Meeting {label.lower()}", f"Meeting '{meeting['description']}' is now {label}.")
    record_history(db, "Update", "Meeting", f"User {host['name']} update meeting status.")

    return {"message": "Meeting status updated successfully.", "meeting": db.get_meeting(meeting_id)}


@router.get("/slot/{slot_id}")
async def list_slot_meetings(slot_id: int, db: Database = Depends(get_db)):
    meetings = db.list_meetings_by_slot(slot_id)
    if not meetings:
        raise NotFoundError(f"No meetings found for slotId {slot_id}.")
    return {"message": "Meetings fetched successfully.", "meetings": meetings}
