from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from skillpath.config import get_settings
from skillpath.db import models  # noqa: F401
from skillpath.db.base import Base
from skillpath.db.session import dispose_engine, get_engine
from skillpath.generation import PROMPT_SKILL_GRAPH, GenerationResult
from skillpath.services import reset_services
from skillpath.telemetry import clear_listeners

DEFAULT_SKILL_GRAPH: Dict[str, Any] = {
    "nodes": [
        {"name": "Python", "description": "Write idiomatic services.", "prerequisites": []},
        {"name": "Docker", "description": "Package services.", "prerequisites": ["python"]},
        {"name": "Kubernetes", "description": "Operate clusters.", "prerequisites": ["Docker", "Helm", "Kubernetes"]},
        {"name": "Team Communication", "description": "Talk to people.", "prerequisites": []},
        {"name": " python ", "description": "Duplicate entry.", "prerequisites": []},
    ]
}


class FakeGenerator:
    """Records calls and returns canned payloads; optionally slow or failing."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.skill_graph: Dict[str, Any] = DEFAULT_SKILL_GRAPH
        self.course_matches: List[Dict[str, Any]] = [{"index": 1, "relevance_score": 90, "reasoning": "Core"}]
        self.tokens = 1200
        self.delay = 0.0
        self.error: Optional[BaseException] = None

    def calls_for(self, prompt_kind: str) -> List[Dict[str, Any]]:
        return [parameters for kind, parameters in self.calls if kind == prompt_kind]

    async def generate(self, prompt_kind: str, parameters: Dict[str, Any]) -> GenerationResult:
        self.calls.append((prompt_kind, parameters))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if prompt_kind == PROMPT_SKILL_GRAPH:
            content: Any = self.skill_graph
        else:
            content = {"recommendations": self.course_matches}
        return GenerationResult(content=content, tokens_consumed=self.tokens, model="fake-model")


@pytest.fixture
def database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_path = tmp_path / "skillpath.db"
    monkeypatch.setenv("SKILLPATH_DATABASE_URL", f"sqlite:///{db_path}")
    get_settings.cache_clear()
    dispose_engine()
    reset_services()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    clear_listeners()
    reset_services()
    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()
