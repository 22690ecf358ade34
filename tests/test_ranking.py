"""Tests for ranking prompts, JSON recovery and the ranking agent."""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from slotmatch import llm
from slotmatch.agents.ranking import (
    GUEST_MATCH_MAX_TOKENS,
    HOST_RELEVANCE_MAX_TOKENS,
    rank_meetings_for_slot,
    rank_slots_for_guest,
)
from slotmatch.errors import (
    MalformedModelOutput,
    NoStructuredOutput,
    NotFoundError,
    UpstreamUnavailable,
    ValidationError,
)
from slotmatch.prompts import build_guest_match_prompt, build_host_relevance_prompt


def _add_slot(db, user_id, title="Slot", description="", active=True) -> int:
    sid = db.insert_slot({
        "title": title, "description": description,
        "start_time": "1970-01-01T09:00:00+00:00", "end_time": "1970-01-01T10:00:00+00:00",
        "start_date": "2024-01-01T00:00:00+00:00", "end_date": "2024-01-07T00:00:00+00:00",
        "user_id": user_id,
    })
    if not active:
        db.set_slot_active(sid, False)
    return sid


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def test_host_prompt_lists_meetings_and_is_deterministic():
    meetings = [{"id": 3, "description": "Knee pain"}, {"id": 7, "description": "Tax return"}]
    prompt = build_host_relevance_prompt("Doctor", meetings)
    assert prompt == build_host_relevance_prompt("Doctor", meetings)
    assert 'ID: 3, Description: "Knee pain"' in prompt
    assert '"Doctor"' in prompt
    assert '"relevance"' in prompt


def test_host_prompt_with_no_meetings():
    assert "(no meetings)" in build_host_relevance_prompt("", [])


def test_prompts_quote_untrusted_text():
    prompt = build_host_relevance_prompt("Chef", [{"id": 1, "description": 'say "hi"\nthen ]'}])
    assert r'"say \"hi\"\nthen ]"' in prompt


def test_guest_prompt_lists_every_slot():
    hosts = [
        {"id": 2, "name": "Bob", "profession": "Chef", "slots": [
            {"id": 10, "title": "Pasta class", "description": "Fresh pasta", "start_time": "a", "end_time": "b"},
            {"id": 11, "title": "Knife skills", "description": "", "start_time": "c", "end_time": "d"},
        ]},
    ]
    prompt = build_guest_match_prompt("I want to cook", hosts)
    assert '"slotId": 10' in prompt
    assert '"slotId": 11' in prompt
    assert '"hostId": 2' in prompt
    assert "Never omit a slot" in prompt
    assert '"I want to cook"' in prompt


def test_guest_prompt_with_no_hosts():
    prompt = build_guest_match_prompt("anything", [])
    assert "[]" in prompt


# ---------------------------------------------------------------------------
# JSON recovery
# ---------------------------------------------------------------------------

def test_extract_strips_surrounding_prose():
    text = 'Sure! Here is the ranking:\n[{"id": 2, "relevance": 9}, {"id": 1, "relevance": 3}]\nHope this helps.'
    assert llm.extract_json_array(text) == [{"id": 2, "relevance": 9}, {"id": 1, "relevance": 3}]


def test_extract_returns_value_without_key_checks():
    assert llm.extract_json_array('[{"unexpected": true}]') == [{"unexpected": True}]


@pytest.mark.parametrize("text", ["", "no array here", "] backwards [", "{}"])
def test_extract_without_brackets(text):
    with pytest.raises(NoStructuredOutput):
        llm.extract_json_array(text)


def test_extract_malformed_keeps_decode_error():
    with pytest.raises(json.JSONDecodeError) as decode_info:
        json.loads('[{"id": 1,}]')

    with pytest.raises(MalformedModelOutput) as exc_info:
        llm.extract_json_array('The ranking: [{"id": 1,}] done.')
    assert exc_info.value.decode_error == str(decode_info.value)
    assert "Expecting" in exc_info.value.decode_error
    assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)
    assert exc_info.value.status_code == 500


# ---------------------------------------------------------------------------
# Model call
# ---------------------------------------------------------------------------

def test_chat_wraps_upstream_failure(cfg, monkeypatch):
    def boom(**kwargs):
        raise TimeoutError("read timed out")

    monkeypatch.setattr("litellm.completion", boom)
    with pytest.raises(UpstreamUnavailable) as exc_info:
        llm.chat(cfg, "hello")
    assert isinstance(exc_info.value.__cause__, TimeoutError)


def test_chat_passes_budget_and_timeout(cfg, monkeypatch):
    seen = {}

    def fake_completion(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="[1]"))])

    monkeypatch.setattr("litellm.completion", fake_completion)
    assert llm.chat(cfg, "hello", max_tokens=200) == "[1]"
    assert seen["model"] == "openai/gpt-4"
    assert seen["max_tokens"] == 200
    assert seen["timeout"] == cfg.llm_timeout
    assert seen["api_key"] == "test-key"


def test_model_name_keeps_explicit_prefix(cfg):
    cfg.llm_model = "azure/my-deployment"
    assert llm._model_name(cfg) == "azure/my-deployment"


# ---------------------------------------------------------------------------
# Ranking agent
# ---------------------------------------------------------------------------

def test_rank_meetings_returns_model_order_verbatim(cfg, db, make_user, fake_llm):
    host = make_user("Host", "Doctor")
    sid = _add_slot(db, host)
    m1 = db.insert_meeting({"description": "Tax help", "date": "2024-01-02T09:00:00+00:00", "slot_id": sid, "host_id": host})
    m2 = db.insert_meeting({"description": "Back pain", "date": "2024-01-03T09:00:00+00:00", "slot_id": sid, "host_id": host})

    fake_llm.reply = f'Ranking: [{{"id": {m2}, "relevance": 9}}, {{"id": {m1}, "relevance": 1}}]'
    result = rank_meetings_for_slot(cfg, db, sid)

    assert result == [{"id": m2, "relevance": 9}, {"id": m1, "relevance": 1}]
    assert fake_llm.max_tokens == [HOST_RELEVANCE_MAX_TOKENS]
    assert "Back pain" in fake_llm.prompts[0]
    assert '"Doctor"' in fake_llm.prompts[0]


def test_rank_meetings_without_meetings_skips_model(cfg, db, make_user, fake_llm):
    sid = _add_slot(db, make_user())
    assert rank_meetings_for_slot(cfg, db, sid) == []
    assert fake_llm.prompts == []


def test_rank_meetings_unknown_slot(cfg, db, fake_llm):
    with pytest.raises(NotFoundError):
        rank_meetings_for_slot(cfg, db, 404)


def test_rank_meetings_propagates_bad_output(cfg, db, make_user, fake_llm):
    host = make_user()
    sid = _add_slot(db, host)
    db.insert_meeting({"description": "x", "date": "2024-01-02T09:00:00+00:00", "slot_id": sid, "host_id": host})

    fake_llm.reply = "I cannot rank these."
    with pytest.raises(NoStructuredOutput):
        rank_meetings_for_slot(cfg, db, sid)


def test_rank_slots_lists_other_hosts_active_slots(cfg, db, make_user, fake_llm):
    guest = make_user("Guest")
    chef = make_user("Bob", "Chef")
    guest_slot = _add_slot(db, guest, title="Guest own slot")
    pasta = _add_slot(db, chef, title="Pasta class")
    _add_slot(db, chef, title="Retired class", active=False)

    fake_llm.reply = f'[{{"slotId": {pasta}, "hostId": {chef}}}]'
    result = rank_slots_for_guest(cfg, db, guest, "teach me to cook")

    assert result == [{"slotId": pasta, "hostId": chef}]
    assert fake_llm.max_tokens == [GUEST_MATCH_MAX_TOKENS]
    prompt = fake_llm.prompts[0]
    assert "Pasta class" in prompt
    assert "Retired class" not in prompt
    assert f'"slotId": {guest_slot}' not in prompt


def test_rank_slots_without_hosts_skips_model(cfg, db, make_user, fake_llm):
    guest = make_user("Guest")
    assert rank_slots_for_guest(cfg, db, guest, "anything") == []
    assert fake_llm.prompts == []


@pytest.mark.parametrize("user_id,text", [(None, "hello"), (1, ""), (1, "   ")])
def test_rank_slots_requires_user_and_text(cfg, db, fake_llm, user_id, text):
    with pytest.raises(ValidationError):
        rank_slots_for_guest(cfg, db, user_id, text)


def test_rank_slots_upstream_failure(cfg, db, make_user, fake_llm):
    guest = make_user("Guest")
    _add_slot(db, make_user("Bob"))
    fake_llm.reply = UpstreamUnavailable("connection refused")
    with pytest.raises(UpstreamUnavailable):
        rank_slots_for_guest(cfg, db, guest, "hello")
