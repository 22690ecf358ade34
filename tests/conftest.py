"""Shared fixtures: a throwaway SQLite database and a config that never hits the network."""

from __future__ import annotations

import pytest

from slotmatch.config import Config
from slotmatch.database import Database


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        llm_provider="openai",
        openai_api_key="test-key",
        email_backend="console",
        db_path=tmp_path / "test.db",
        jwt_secret="test-secret",
    )


@pytest.fixture
def db(cfg: Config) -> Database:
    return Database(cfg.db_path)


@pytest.fixture
def make_user(db: Database):
    def _make(name: str = "Alice", profession: str = "", email: str | None = None) -> int:
        return db.insert_user({
            "name": name,
            "email": email or f"{name.lower()}@example.com",
            "password_hash": "not-a-real-hash",
            "profession": profession,
        })
    return _make


@pytest.fixture
def fake_llm(monkeypatch):
    """Replace the model call; records prompts and returns a canned reply."""
    from slotmatch import llm

    class FakeLLM:
        def __init__(self) -> None:
            self.reply = "[]"
            self.prompts: list[str] = []
            self.max_tokens: list[int] = []

        def __call__(self, cfg, prompt, max_tokens=llm.DEFAULT_MAX_TOKENS):
            self.prompts.append(prompt)
            self.max_tokens.append(max_tokens)
            if isinstance(self.reply, Exception):
                raise self.reply
            return self.reply

    fake = FakeLLM()
    monkeypatch.setattr(llm, "chat", fake)
    return fake
