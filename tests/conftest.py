"""
Shared pytest fixtures for the test suite.

Every test gets fresh stores, sessions and a fake LLM provider, so nothing
leaks between tests and no test talks to a real API.
"""

import json
from datetime import datetime, timedelta
from typing import List, Optional, Union

import pytest

from src.storyforge.config import Settings
from src.storyforge.models import NewStory
from src.storyforge.utils.db_storage import SQLiteStorage
from src.storyforge.utils.llm import BaseLLMClient, StoryGenerationClient
from src.storyforge.utils.storage import MemoryStorage


class FakeProvider(BaseLLMClient):
    """
    LLM provider double.

    Returns the queued responses in order (the last one repeats). A queued
    exception instance is raised instead of returned.
    """

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None):
        self.responses = list(responses or [story_json("The Glass Jar", "Para one.\n\nPara two.")])
        self.calls = []

    @property
    def model_name(self) -> str:
        return "fake-model"

    def generate(self, prompt, system_prompt=None, temperature=None, json_response=False):
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "json_response": json_response,
        })
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def check_availability(self) -> bool:
        return True


class StepClock:
    """Clock that moves forward one minute on every call."""

    def __init__(self, start: datetime = datetime(2024, 3, 5, 10, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(minutes=1)
        return value


def story_json(title: Optional[str], content: str) -> str:
    """Build a provider answer in the expected JSON shape."""
    payload = {"content": content}
    if title is not None:
        payload["title"] = title
    return json.dumps(payload)


def make_story(storage, title: str = "A Story", content: str = "Once.\n\nAgain.", theme: str = "fantasy", setting: Optional[str] = "A forest"):
    return storage.create_story(NewStory(title=title, content=content, theme=theme, setting=setting))


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def memory_storage(clock):
    return MemoryStorage(clock=clock)


@pytest.fixture
def sqlite_storage(tmp_path, clock):
    return SQLiteStorage(tmp_path / "data" / "test.db", clock=clock)


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path, clock):
    """Run the test against both storage implementations."""
    if request.param == "memory":
        return MemoryStorage(clock=clock)
    return SQLiteStorage(tmp_path / "stories.db", clock=clock)


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def generation_client(fake_provider):
    return StoryGenerationClient(provider=fake_provider)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        env="testing",
        rate_limit_enabled=False,
        database_path=tmp_path / "app.db",
    )


@pytest.fixture
def flask_app(test_settings, memory_storage, generation_client):
    """Flask app wired to a fresh in-memory store and the fake provider."""
    from app import create_app

    flask_app = create_app(
        settings=test_settings,
        storage=memory_storage,
        generation_client=generation_client,
    )
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(flask_app):
    """Create a test client for the Flask app."""
    with flask_app.test_client() as client:
        yield client
