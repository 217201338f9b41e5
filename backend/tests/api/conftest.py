"""Shared fixtures and helpers for API tests."""
from datetime import datetime
from typing import Any

import pytest
from httpx import AsyncClient

# A valid UUID that never belongs to a note
FAKE_UUID = "00000000-0000-7000-8000-000000000000"


def parse_ts(value: str) -> datetime:
    """Parse an ISO 8601 timestamp from a response body."""
    return datetime.fromisoformat(value)


async def create_note(
    client: AsyncClient,
    title: str = "T",
    content: str = "C",
) -> dict[str, Any]:
    """Create a note through the API and return its JSON body."""
    response = await client.post("/notes/", json={"title": title, "content": content})
    assert response.status_code == 201, response.text
    return response.json()


async def edit_note(client: AsyncClient, note_id: str, **fields: Any) -> dict[str, Any]:
    """Edit a note through the API, asserting success, and return its JSON body."""
    response = await client.patch(f"/notes/{note_id}", json=fields)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
async def note(client: AsyncClient) -> dict[str, Any]:
    """A freshly created note with no history."""
    return await create_note(client, "Hola", "Mundo")
