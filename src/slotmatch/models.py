"""Pydantic models: request bodies and response shapes for the API."""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, Field


# ── User / Auth ───────────────────────────────────────────────────────────

class UserRegister(BaseModel):
    name: str = ""
    email: str
    password: str
    timezone: str = ""
    profession: str = ""
    role: str = "user"

class UserLogin(BaseModel):
    email: str
    password: str

class User(BaseModel):
    id: int
    name: str = ""
    email: str
    timezone: str = ""
    profession: str = ""
    role: str = "user"
    created_at: str | None = None


# ── Slot ──────────────────────────────────────────────────────────────────

class SlotCreate(BaseModel):
    title: str = ""
    description: str = ""
    start_time: str
    end_time: str
    start_date: str
    end_date: str
    user_id: int

class SlotUpdate(SlotCreate):
    id: int
    active: bool = True

class SlotDelete(BaseModel):
    id: int

class Slot(BaseModel):
    id: int
    title: str = ""
    description: str = ""
    start_time: str
    end_time: str
    start_date: str
    end_date: str
    user_id: int
    active: bool = True
    created_at: str | None = None


# ── Meeting ───────────────────────────────────────────────────────────────

class MeetingStatus(IntEnum):
    CANCELLED = 0
    PENDING = 1
    COMPLETED = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()

class MeetingCreate(BaseModel):
    description: str = ""
    date: str
    slot_id: int
    host_id: int
    guest_ids: list[int] = Field(default_factory=list)
    start_time: str | None = None
    end_time: str | None = None


# ── Ranking ───────────────────────────────────────────────────────────────

class GuestMatchRequest(BaseModel):
    user_id: int | None = None
    text: str = ""


# ── Notification ──────────────────────────────────────────────────────────

class Notification(BaseModel):
    id: int
    user_id: int
    title: str = ""
    description: str = ""
    created_at: str | None = None
