"""Notification routes: read-only listing per user."""

from fastapi import APIRouter, Depends

from slotmatch.database import Database
from slotmatch.dependencies import get_db
from slotmatch.models import Notification

router = APIRouter()


@router.get("/user/{user_id}", response_model=list[Notification])
async def list_user_notifications(user_id: int, db: Database = Depends(get_db)):
    return db.list_notifications(user_id)
