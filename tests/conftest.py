"""
Shared pytest fixtures for seedsoil tests.

Provides scripted LLM and remote fakes so no test touches the network.
"""

import json
import threading
from typing import Any, Callable, Optional, Union

import pytest

from seedsoil.config import StoreConfig
from seedsoil.document_store import DocumentStore
from seedsoil.store import ItemStore
from seedsoil.types import MS_PER_DAY, Item, Seed, Soil, Status


NOW = 1_700_000_000_000


def seed_json(essence: str, nuggets: Optional[list[str]] = None, action: str = "Try it") -> str:
    return json.dumps({
        "essence": essence,
        "nuggets": nuggets if nuggets is not None else ["one", "two"],
        "action": action,
    })


Reply = Union[str, None, Exception, Callable[[str, str], Any]]


class FakeLLMProvider:
    """
    Scripted LLM provider.

    ``replies`` are consumed in order; an Exception is raised, a callable is
    called with (system, user). Once exhausted, ``default`` is returned.
    """

    def __init__(self, replies: Optional[list[Reply]] = None, default: Reply = None):
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[dict] = []

    def generate(self, system, user, *, max_tokens=1024, json_mode=False):
        self.calls.append({
            "system": system, "user": user,
            "max_tokens": max_tokens, "json_mode": json_mode,
        })
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(system, user)
        return reply


class FakeRemote:
    """In-memory remote document with optional blocking writes."""

    def __init__(self, content: Optional[str] = None):
        self.content = content
        self.writes: list[str] = []
        self.reads = 0
        self.fail_with: Optional[Exception] = None
        self.block: Optional[threading.Event] = None
        self.write_started = threading.Event()
        self.closed = False

    def get(self) -> Optional[str]:
        self.reads += 1
        if self.fail_with is not None:
            raise self.fail_with
        return self.content

    def put(self, content: str) -> None:
        self.write_started.set()
        if self.block is not None:
            self.block.wait(5)
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append(content)
        self.content = content

    def close(self) -> None:
        self.closed = True


def make_item(
    item_id: str,
    *,
    strength: float = 1.0,
    status: Status = Status.ACTIVE,
    essence: Optional[str] = None,
    raw: Optional[str] = None,
    last_seen: int = NOW,
) -> Item:
    seed = Seed(essence=essence, nuggets=["n"], action="a") if essence else None
    return Item(
        id=item_id,
        raw=raw if raw is not None else f"raw text of {item_id}",
        soil=Soil(strength=strength, last_seen=last_seen,
                  next_review=last_seen + MS_PER_DAY, status=status),
        seed=seed,
    )


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real home directory and real credentials."""
    monkeypatch.setenv("SEEDSOIL_STORE_PATH", str(tmp_path / "default-store"))
    for var in (
        "SEEDSOIL_API_KEY", "OPENROUTER_API_KEY", "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY", "SEEDSOIL_GIST_ID", "SEEDSOIL_GIST_TOKEN",
        "GITHUB_TOKEN", "OLLAMA_HOST", "SEEDSOIL_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def doc_store(tmp_path):
    store = DocumentStore(tmp_path / "test.db")
    yield store
    store.close()


@pytest.fixture
def item_store(doc_store):
    return ItemStore(doc_store)


@pytest.fixture
def fake_llm():
    return FakeLLMProvider()


@pytest.fixture
def fake_remote():
    return FakeRemote()


@pytest.fixture
def store_config(tmp_path):
    return StoreConfig(path=tmp_path / "store")
