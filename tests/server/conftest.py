"""Fixtures for platform API tests."""
import pytest_asyncio
from httpx import AsyncClient


async def signup(client: AsyncClient, email: str, password: str = "password123") -> dict:
    """Sign up a user and return {"id", "email", "headers"}."""
    response = await client.post(
        "/v1/auth/signup", json={"email": email, "password": password}
    )
    assert response.status_code == 200, response.text
    data = response.json()
    return {
        "id": data["user"]["id"],
        "email": data["user"]["email"],
        "headers": {"Authorization": f"Bearer {data['accessToken']}"},
    }


@pytest_asyncio.fixture
async def alice(client: AsyncClient) -> dict:
    return await signup(client, "alice@example.com")


@pytest_asyncio.fixture
async def bob(client: AsyncClient) -> dict:
    return await signup(client, "bob@example.com")


async def create_site(client: AsyncClient, user: dict, name: str = "My Site", slug: str = "my-site-abc123") -> dict:
    response = await client.post(
        "/v1/tables/hosted_sites",
        json={"site_name": name, "public_link_slug": slug},
        headers=user["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_identity(client: AsyncClient, user: dict, localpart: str) -> dict:
    response = await client.post(
        "/v1/rpc/create_boongle_mail_identity",
        json={"localpart": localpart},
        headers=user["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()
