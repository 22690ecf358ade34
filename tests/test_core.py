"""Basic tests for Slotmatch config, models and the SQLite store."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from slotmatch.config import Config, load_config
from slotmatch.database import Database
from slotmatch.errors import PersistenceError
from slotmatch.models import MeetingStatus, SlotCreate, User


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def test_config_defaults():
    cfg = Config()
    assert cfg.llm_provider == "openai"
    assert cfg.llm_model == "gpt-4"
    assert cfg.email_backend == "console"
    assert cfg.llm_timeout == 30.0


def test_config_anthropic_default_model():
    cfg = Config(llm_provider="anthropic")
    assert cfg.llm_model == "claude-sonnet-4-20250514"


def test_load_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.setenv("LLM_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("LLM_TIMEOUT", "12.5")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "x.db"))
    cfg = load_config(env_file=str(tmp_path / "missing.env"))
    assert cfg.llm_model == "gpt-4o-mini"
    assert cfg.llm_timeout == 12.5
    assert cfg.db_path == tmp_path / "x.db"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def test_meeting_status_values():
    assert MeetingStatus.PENDING == 1
    assert MeetingStatus(0).label == "Cancelled"
    assert MeetingStatus(2).label == "Completed"


def test_user_model_drops_password_hash():
    u = User(id=1, email="a@example.com", password_hash="secret")
    assert "password_hash" not in u.model_dump()


def test_slot_create_requires_bounds():
    with pytest.raises(PydanticValidationError):
        SlotCreate(user_id=1, start_time="09:00")


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

def test_insert_and_get_user(db: Database):
    uid = db.insert_user({"name": "Alice", "email": "alice@example.com", "password_hash": "h", "profession": "Doctor"})
    assert db.get_user_by_id(uid)["profession"] == "Doctor"
    assert db.get_user_by_email("alice@example.com")["id"] == uid
    assert db.get_user_by_email("nobody@example.com") is None


def test_duplicate_email_is_persistence_error(db: Database, make_user):
    make_user("Alice")
    with pytest.raises(PersistenceError):
        make_user("Alice")


def test_slot_roundtrip_and_deactivate(db: Database, make_user):
    uid = make_user()
    slot_id = db.insert_slot({
        "title": "Office hours", "start_time": "1970-01-01T09:00:00+00:00",
        "end_time": "1970-01-01T10:00:00+00:00", "start_date": "2024-01-01T00:00:00+00:00",
        "end_date": "2024-01-07T00:00:00+00:00", "user_id": uid,
    })
    slot = db.get_slot(slot_id)
    assert slot["active"] is True
    assert slot["title"] == "Office hours"

    assert db.set_slot_active(slot_id, False)
    assert db.list_active_slots_for_user(uid) == []
    assert len(db.list_slots_by_user(uid)) == 1


def test_hosts_with_active_slots_excludes_requester(db: Database, make_user):
    alice = make_user("Alice", "Lawyer")
    bob = make_user("Bob", "Chef")
    carol = make_user("Carol", "Pilot")
    for owner, active in ((alice, True), (bob, True), (carol, False)):
        sid = db.insert_slot({
            "start_time": "1970-01-01T09:00:00+00:00", "end_time": "1970-01-01T10:00:00+00:00",
            "start_date": "2024-01-01T00:00:00+00:00", "end_date": "2024-01-02T00:00:00+00:00",
            "user_id": owner,
        })
        db.set_slot_active(sid, active)

    hosts = db.list_hosts_with_active_slots(exclude_user_id=alice)
    assert [h["name"] for h in hosts] == ["Bob"]
    assert len(hosts[0]["slots"]) == 1


def test_hosts_and_their_slots_come_from_one_connection(db: Database, make_user, monkeypatch):
    requester = make_user("Alice")
    for name in ("Bob", "Carol"):
        db.insert_slot({
            "start_time": "1970-01-01T09:00:00+00:00", "end_time": "1970-01-01T10:00:00+00:00",
            "start_date": "2024-01-01T00:00:00+00:00", "end_date": "2024-01-02T00:00:00+00:00",
            "user_id": make_user(name),
        })

    opened = []
    real_connect = db._connect

    def counting_connect():
        opened.append(1)
        return real_connect()

    monkeypatch.setattr(db, "_connect", counting_connect)
    hosts = db.list_hosts_with_active_slots(exclude_user_id=requester)

    assert len(opened) == 1
    assert [len(h["slots"]) for h in hosts] == [1, 1]


def test_meeting_with_guests_and_delete(db: Database, make_user):
    host = make_user("Host")
    guest = make_user("Guest")
    sid = db.insert_slot({
        "start_time": "1970-01-01T09:00:00+00:00", "end_time": "1970-01-01T10:00:00+00:00",
        "start_date": "2024-01-01T00:00:00+00:00", "end_date": "2024-01-02T00:00:00+00:00",
        "user_id": host,
    })
    mid = db.insert_meeting({"description": "Intro", "date": "2024-01-01T09:00:00+00:00", "slot_id": sid, "host_id": host})
    db.insert_meeting_guest(mid, guest)

    meeting = db.get_meeting(mid)
    assert meeting["status"] == 1
    assert meeting["guest_ids"] == [guest]
    assert db.find_meeting_by_tuple("Intro", "2024-01-01T09:00:00+00:00", sid, host)["id"] == mid

    assert db.update_meeting_status(mid, 0)
    assert db.get_meeting(mid)["status"] == 0

    assert db.delete_meeting(mid)
    assert db.get_meeting(mid) is None
    assert not db.delete_meeting(mid)


def test_guest_link_to_unknown_user_fails(db: Database, make_user):
    host = make_user("Host")
    sid = db.insert_slot({
        "start_time": "1970-01-01T09:00:00+00:00", "end_time": "1970-01-01T10:00:00+00:00",
        "start_date": "2024-01-01T00:00:00+00:00", "end_date": "2024-01-02T00:00:00+00:00",
        "user_id": host,
    })
    mid = db.insert_meeting({"description": "x", "date": "2024-01-01T09:00:00+00:00", "slot_id": sid, "host_id": host})
    with pytest.raises(PersistenceError):
        db.insert_meeting_guest(mid, 999)


def test_notifications_and_history(db: Database, make_user):
    uid = make_user()
    db.insert_notification({"user_id": uid, "title": "First"})
    db.insert_notification({"user_id": uid, "title": "Second"})
    assert [n["title"] for n in db.list_notifications(uid)] == ["Second", "First"]

    db.insert_history("Create", "Slot", "User Alice creates a new slot.")
    entry = db.list_history()[0]
    assert entry["operation"] == "Create"
    assert entry["table_name"] == "Slot"
