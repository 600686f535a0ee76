"""Tests for tag endpoints."""
from httpx import AsyncClient

IMAGE = "https://img.example.com/cover.png"


async def create_bookmark(
    client: AsyncClient, headers: dict[str, str], url: str, tags: list[str],
) -> dict:
    """Create a bookmark that needs no metadata fetch."""
    response = await client.post(
        "/bookmarks",
        json={"url": url, "title": "t", "image": IMAGE, "tags": tags},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test__list_tags__sorted_by_count_then_name(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Tags come back most-used first, ties broken alphabetically."""
    await create_bookmark(client, auth_headers, "https://e.com/1", ["python", "web"])
    await create_bookmark(client, auth_headers, "https://e.com/2", ["python", "api"])
    await client.post("/tags", json={"name": "unused"}, headers=auth_headers)

    response = await client.get("/tags", headers=auth_headers)
    assert response.status_code == 200
    assert [(t["name"], t["count"]) for t in response.json()["data"]] == [
        ("python", 2),
        ("api", 1),
        ("web", 1),
        ("unused", 0),
    ]


async def test__list_tags__isolated_per_user(
    client: AsyncClient,
    auth_headers: dict[str, str],
    other_auth_headers: dict[str, str],
) -> None:
    """Users only see their own tags."""
    await client.post("/tags", json={"name": "mine"}, headers=auth_headers)
    response = await client.get("/tags", headers=other_auth_headers)
    assert response.json()["data"] == []


async def test__create_tag__normalizes_and_defaults_color(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Names are trimmed and lowercased; color defaults to indigo."""
    response = await client.post("/tags", json={"name": "  Machine Learning "}, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "machine learning"
    assert data["color"] == "#6366f1"
    assert data["count"] == 0


async def test__create_tag__duplicate_name_is_400(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Tag names are unique per user, case-insensitively."""
    await client.post("/tags", json={"name": "react"}, headers=auth_headers)
    response = await client.post("/tags", json={"name": "REACT"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Tag with this name already exists"}


async def test__create_tag__same_name_allowed_for_different_users(
    client: AsyncClient,
    auth_headers: dict[str, str],
    other_auth_headers: dict[str, str],
) -> None:
    """Uniqueness is scoped to the owner."""
    first = await client.post("/tags", json={"name": "react"}, headers=auth_headers)
    second = await client.post("/tags", json={"name": "react"}, headers=other_auth_headers)
    assert first.status_code == second.status_code == 201
    assert first.json()["data"]["id"] != second.json()["data"]["id"]


async def test__create_tag__invalid_color_is_400(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Colors must be #rrggbb."""
    response = await client.post(
        "/tags", json={"name": "x", "color": "blue"}, headers=auth_headers,
    )
    assert response.status_code == 400
    assert any(err["field"] == "color" for err in response.json()["errors"])


async def test__create_tag__name_too_long_is_400(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Tag names are limited to 50 characters."""
    response = await client.post("/tags", json={"name": "x" * 51}, headers=auth_headers)
    assert response.status_code == 400


async def test__update_tag__renames_and_recolors(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Rename and recolor show up on bookmarks that use the tag."""
    bookmark = await create_bookmark(client, auth_headers, "https://e.com/1", ["js"])
    tag_id = bookmark["tags"][0]["id"]

    response = await client.patch(
        f"/tags/{tag_id}", json={"name": "JavaScript", "color": "#FF0000"}, headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "javascript"
    assert data["color"] == "#ff0000"
    assert data["count"] == 1

    refreshed = await client.get(f"/bookmarks/{bookmark['id']}", headers=auth_headers)
    assert refreshed.json()["data"]["tags"][0]["name"] == "javascript"


async def test__update_tag__rename_to_existing_is_400(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Renaming onto another tag's name is a conflict."""
    await client.post("/tags", json={"name": "a"}, headers=auth_headers)
    b = (await client.post("/tags", json={"name": "b"}, headers=auth_headers)).json()["data"]

    response = await client.patch(f"/tags/{b['id']}", json={"name": "a"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Tag with this name already exists"


async def test__update_tag__other_users_tag_is_404(
    client: AsyncClient,
    auth_headers: dict[str, str],
    other_auth_headers: dict[str, str],
) -> None:
    """Users can't edit each other's tags."""
    tag = (await client.post("/tags", json={"name": "a"}, headers=auth_headers)).json()["data"]
    response = await client.patch(
        f"/tags/{tag['id']}", json={"name": "stolen"}, headers=other_auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Tag not found"


async def test__delete_tag__detaches_from_bookmarks(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Deleting a tag removes it from bookmarks but keeps the bookmarks."""
    first = await create_bookmark(client, auth_headers, "https://e.com/1", ["gone", "kept"])
    second = await create_bookmark(client, auth_headers, "https://e.com/2", ["gone"])
    gone_id = next(t["id"] for t in first["tags"] if t["name"] == "gone")

    response = await client.delete(f"/tags/{gone_id}", headers=auth_headers)
    assert response.status_code == 200

    one = (await client.get(f"/bookmarks/{first['id']}", headers=auth_headers)).json()["data"]
    two = (await client.get(f"/bookmarks/{second['id']}", headers=auth_headers)).json()["data"]
    assert [t["name"] for t in one["tags"]] == ["kept"]
    assert two["tags"] == []

    tags = (await client.get("/tags", headers=auth_headers)).json()["data"]
    assert [t["name"] for t in tags] == ["kept"]


async def test__delete_tag__missing_is_404(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Deleting an unknown tag is a 404."""
    response = await client.delete(f"/tags/{'0' * 24}", headers=auth_headers)
    assert response.status_code == 404
