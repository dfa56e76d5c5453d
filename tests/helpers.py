"""Shared test doubles and helpers."""
from datetime import datetime

from app.schemas import EntryWithAnalysis, ThemeResponse
from app.services.llm_provider import TextGenerationProvider


class FakeProvider(TextGenerationProvider):
    """Replays canned responses; an Exception in the list is raised instead."""

    name = "fake"

    def __init__(self, *responses):
        super().__init__(max_attempts=1)
        self.responses = list(responses)
        self.prompts = []

    async def _complete(self, prompt, *, system, json_object):
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def signup(client, username="alice", password="secret123", email=None):
    payload = {"username": username, "password": password}
    if email:
        payload["email"] = email
    response = client.post("/api/auth/signup", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def entry_with_themes(entry_id, *themes):
    now = datetime(2024, 1, 1)
    return EntryWithAnalysis(
        id=entry_id,
        user_id=1,
        title=f"Entry {entry_id}",
        content="...",
        created_at=now,
        updated_at=now,
        themes=[ThemeResponse(id=i, entry_id=entry_id, theme=t) for i, t in enumerate(themes, 1)],
    )
