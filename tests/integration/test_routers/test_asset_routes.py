"""Integration tests for asset and auth routes."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_requires_auth(client: AsyncClient):
    """Test that single-shot upload requires authentication."""
    response = await client.post("/api/upload", files={"file": ("a.txt", b"hello", "text/plain")})
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_stores_object(auth_client: AsyncClient, s3_client):
    response = await auth_client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"key": "docs/notes.txt"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["key"] == "docs/notes.txt"
    assert body["size"] == 5
    assert body["contentType"] == "text/plain"
    assert s3_client.objects["docs/notes.txt"]["body"] == b"hello"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_without_file_is_400(auth_client: AsyncClient):
    response = await auth_client.post("/api/upload", data={"key": "docs/notes.txt"})

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_check_asset(client: AsyncClient, storage_repo):
    await storage_repo.put_object(b"x", "docs/a.txt", "text/plain")

    present = await client.get("/api/check-asset", params={"key": "docs/a.txt"})
    absent = await client.get("/api/check-asset", params={"key": "docs/b.txt"})
    missing = await client.get("/api/check-asset")

    assert present.json() == {"exists": True, "key": "docs/a.txt"}
    assert absent.json() == {"exists": False, "key": "docs/b.txt"}
    assert missing.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_asset_serves_stored_bytes(client: AsyncClient, storage_repo):
    stored = await storage_repo.put_object(b"hello world", "docs/a & b.txt", "text/plain")

    response = await client.get("/api/asset", params={"key": "docs/a & b.txt"})

    assert response.status_code == 200
    assert response.content == b"hello world"
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["etag"] == stored["checksum"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_asset_missing_key_and_object(client: AsyncClient):
    missing_key = await client.get("/api/asset")
    absent = await client.get("/api/asset", params={"key": "docs/none.txt"})

    assert missing_key.status_code == 400
    assert missing_key.json()["detail"] == "Missing key parameter"
    assert absent.status_code == 404
    assert absent.json()["detail"] == "File not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_assets(auth_client: AsyncClient, storage_repo):
    await storage_repo.put_object(b"1", "a/one.txt", "text/plain")
    await storage_repo.put_object(b"2", "b/two.txt", "text/plain")

    response = await auth_client.get("/api/list-assets", params={"prefix": "a/"})

    body = response.json()
    assert response.status_code == 200
    assert body["prefix"] == "a/"
    assert [obj["key"] for obj in body["objects"]] == ["a/one.txt"]
    assert body["objects"][0]["lastModified"] is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_assets_requires_auth(client: AsyncClient):
    response = await client.get("/api/list-assets")
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_asset(auth_client: AsyncClient, storage_repo, s3_client):
    await storage_repo.put_object(b"x", "docs/a.txt", "text/plain")

    response = await auth_client.delete("/api/delete-asset", params={"key": "docs/a.txt"})

    assert response.status_code == 200
    assert response.json()["key"] == "docs/a.txt"
    assert "docs/a.txt" not in s3_client.objects


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rename_asset(auth_client: AsyncClient, storage_repo, s3_client):
    await storage_repo.put_object(b"x", "docs/a.txt", "text/plain")

    response = await auth_client.post(
        "/api/rename-asset", json={"oldKey": "docs/a.txt", "newKey": "docs/b.txt"}
    )

    assert response.status_code == 200
    assert response.json()["newKey"] == "docs/b.txt"
    assert set(s3_client.objects) == {"docs/b.txt"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rename_asset_conflict(auth_client: AsyncClient, storage_repo):
    await storage_repo.put_object(b"x", "docs/a.txt", "text/plain")
    await storage_repo.put_object(b"y", "docs/b.txt", "text/plain")

    response = await auth_client.post(
        "/api/rename-asset", json={"oldKey": "docs/a.txt", "newKey": "docs/b.txt"}
    )

    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rename_asset_missing_body_is_400(auth_client: AsyncClient):
    response = await auth_client.post("/api/rename-asset", json={"oldKey": "docs/a.txt"})

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_auth_status(client: AsyncClient, auth_headers):
    anonymous = await client.get("/api/auth/status")
    signed_in = await client.get("/api/auth/status", headers=auth_headers)

    assert anonymous.json() == {"authenticated": False}
    assert signed_in.json() == {"authenticated": True}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_session_cookie_authenticates(client: AsyncClient):
    from cloudfiles.config import settings
    from cloudfiles.core.security import create_access_token

    client.cookies.set(settings.jwt_cookie_name, create_access_token({"sub": "user-1"}))
    response = await client.get("/api/list-assets")

    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_logout_clears_cookie(client: AsyncClient):
    response = await client.post("/api/auth/logout")

    assert response.status_code == 200
    assert "cloudfiles_token=" in response.headers["set-cookie"]
