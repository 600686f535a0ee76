"""Tests for health check endpoint."""
from httpx import AsyncClient


async def test__health_check__reports_database(client: AsyncClient) -> None:
    """Health is public and reports database status."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"] == {"status": "healthy", "database": "healthy"}
