"""Tests for collection endpoints."""
from httpx import AsyncClient

IMAGE = "https://img.example.com/cover.png"


async def create_bookmark(
    client: AsyncClient, headers: dict[str, str], url: str, collections: list[str] | None = None,
) -> dict:
    """Create a bookmark that needs no metadata fetch."""
    response = await client.post(
        "/bookmarks",
        json={"url": url, "title": "t", "image": IMAGE, "collections": collections or []},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test__list_collections__smart_collections_first(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """A new user sees the three smart collections with zero counts."""
    response = await client.get("/collections", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert [(c["id"], c["name"], c["bookmarkCount"]) for c in data] == [
        ("all", "All Bookmarks", 0),
        ("unread", "Unread", 0),
        ("recent", "Recently Added", 0),
    ]
    assert all(c["isSmartCollection"] for c in data)
    assert [c["smartCollectionType"] for c in data] == ["all", "unread", "recent"]


async def test__list_collections__counts_and_order(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Smart counts reflect bookmarks; real collections follow in creation order."""
    reading = (await client.post(
        "/collections", json={"name": "Reading"}, headers=auth_headers,
    )).json()["data"]
    await client.post("/collections", json={"name": "Archive"}, headers=auth_headers)

    first = await create_bookmark(client, auth_headers, "https://e.com/1", [reading["id"]])
    await create_bookmark(client, auth_headers, "https://e.com/2")
    await client.patch(f"/bookmarks/{first['id']}", json={"isUnread": False}, headers=auth_headers)

    data = (await client.get("/collections", headers=auth_headers)).json()["data"]
    counts = {c["id"]: c["bookmarkCount"] for c in data}
    assert counts["all"] == 2
    assert counts["unread"] == 1
    assert counts["recent"] == 2
    assert [c["name"] for c in data[3:]] == ["Reading", "Archive"]
    assert data[3]["bookmarkCount"] == 1
    assert data[3]["isSmartCollection"] is False
    assert data[3]["smartCollectionType"] is None


async def test__create_collection__defaults(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """New collections get the folder icon and no description."""
    response = await client.post("/collections", json={"name": "Reading"}, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "Reading"
    assert data["icon"] == "\U0001f4c1"
    assert data["description"] is None
    assert data["bookmarkCount"] == 0


async def test__create_collection__duplicate_name_is_400(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Collection names are unique per user."""
    await client.post("/collections", json={"name": "Reading"}, headers=auth_headers)
    response = await client.post("/collections", json={"name": "Reading"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Collection with this name already exists"


async def test__create_collection__validates_lengths(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Name is limited to 100 characters and description to 300."""
    long_name = await client.post("/collections", json={"name": "n" * 101}, headers=auth_headers)
    long_desc = await client.post(
        "/collections", json={"name": "ok", "description": "d" * 301}, headers=auth_headers,
    )
    assert long_name.status_code == 400
    assert long_desc.status_code == 400


async def test__update_collection__changes_fields(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Name, description and icon can be updated."""
    created = (await client.post(
        "/collections", json={"name": "Reading"}, headers=auth_headers,
    )).json()["data"]
    response = await client.patch(
        f"/collections/{created['id']}",
        json={"name": "To Read", "description": "Later", "icon": "\U0001f4da"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert (data["name"], data["description"], data["icon"]) == ("To Read", "Later", "\U0001f4da")


async def test__delete_collection__keeps_bookmarks(
    client: AsyncClient, auth_headers: dict[str, str],
) -> None:
    """Deleting a collection unfiles its bookmarks without deleting them."""
    created = (await client.post(
        "/collections", json={"name": "Reading"}, headers=auth_headers,
    )).json()["data"]
    bookmark = await create_bookmark(client, auth_headers, "https://e.com/1", [created["id"]])

    response = await client.delete(f"/collections/{created['id']}", headers=auth_headers)
    assert response.status_code == 200

    refreshed = await client.get(f"/bookmarks/{bookmark['id']}", headers=auth_headers)
    assert refreshed.status_code == 200
    assert refreshed.json()["data"]["collections"] == []


async def test__collections__other_users_collection_rejected(
    client: AsyncClient,
    auth_headers: dict[str, str],
    other_auth_headers: dict[str, str],
) -> None:
    """Another user's collection can't be used, edited or deleted."""
    created = (await client.post(
        "/collections", json={"name": "Private"}, headers=auth_headers,
    )).json()["data"]

    filing = await client.post(
        "/bookmarks",
        json={"url": "https://e.com", "title": "t", "image": IMAGE, "collections": [created["id"]]},
        headers=other_auth_headers,
    )
    assert filing.status_code == 400

    edit = await client.patch(
        f"/collections/{created['id']}", json={"name": "Mine"}, headers=other_auth_headers,
    )
    delete = await client.delete(f"/collections/{created['id']}", headers=other_auth_headers)
    assert edit.status_code == delete.status_code == 404

    listing = (await client.get("/collections", headers=other_auth_headers)).json()["data"]
    assert [c["id"] for c in listing] == ["all", "unread", "recent"]
