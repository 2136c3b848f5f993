"""Tests for git host commit providers."""

import httpx
import pytest

from pipealert.core.errors import CommitLookupError
from pipealert.sources.bitbucket import BitBucketProvider
from pipealert.sources.github import GitHubProvider

COMMIT_ID = "3fcdaa5ac3e29c79008319ede6c092643f204af0"


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_bitbucket_commit_parses_author_email() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "hash": COMMIT_ID,
                "author": {"raw": "Marcel Scherzer <mscherzer@example.com>"},
                "summary": {"raw": "The example pipeline now creates notification rules."},
                "links": {"html": {"href": f"https://bitbucket.org/acme/shop/commits/{COMMIT_ID}"}},
            },
        )

    provider = BitBucketProvider("user", "app-password", client=client_for(handler))

    commit = await provider.fetch_commit("acme/shop", COMMIT_ID)

    assert str(requests[0].url) == (
        f"https://api.bitbucket.org/2.0/repositories/acme/shop/commit/{COMMIT_ID}"
    )
    assert requests[0].headers["Authorization"].startswith("Basic ")
    assert commit.id == COMMIT_ID
    assert commit.author == "Marcel Scherzer <mscherzer@example.com>"
    assert commit.author_email == "mscherzer@example.com"
    assert commit.summary == "The example pipeline now creates notification rules."
    assert commit.link == f"https://bitbucket.org/acme/shop/commits/{COMMIT_ID}"
    await provider.close()


@pytest.mark.asyncio
async def test_bitbucket_author_without_email() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "author": {"raw": "buildbot"},
                "summary": {"raw": "Bump version"},
                "links": {"html": {"href": "https://bitbucket.org/x"}},
            },
        )

    provider = BitBucketProvider("user", "pw", client=client_for(handler))

    commit = await provider.fetch_commit("acme/shop", COMMIT_ID)

    assert commit.author == "buildbot"
    assert commit.author_email is None


@pytest.mark.asyncio
async def test_bitbucket_http_error_raises_lookup_error() -> None:
    provider = BitBucketProvider(
        "user",
        "pw",
        client=client_for(lambda request: httpx.Response(404, json={"error": "not found"})),
    )

    with pytest.raises(CommitLookupError):
        await provider.fetch_commit("acme/shop", COMMIT_ID)


@pytest.mark.asyncio
async def test_github_commit() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "sha": COMMIT_ID,
                "author": {"name": "Mona Lisa", "email": "mona@example.com"},
                "message": "Fix the build",
                "html_url": f"https://github.com/octocat/shop/commit/{COMMIT_ID}",
            },
        )

    provider = GitHubProvider("octocat", "token", client=client_for(handler))

    commit = await provider.fetch_commit("octocat/shop", COMMIT_ID)

    assert str(requests[0].url) == f"https://api.github.com/repos/octocat/shop/git/commits/{COMMIT_ID}"
    assert requests[0].headers["Accept"] == "application/vnd.github.v3+json"
    assert commit.author == "Mona Lisa <mona@example.com>"
    assert commit.author_email == "mona@example.com"
    assert commit.summary == "Fix the build"
    assert commit.link == f"https://github.com/octocat/shop/commit/{COMMIT_ID}"


@pytest.mark.asyncio
async def test_github_unexpected_body_raises_lookup_error() -> None:
    provider = GitHubProvider(
        "octocat",
        "token",
        client=client_for(lambda request: httpx.Response(200, json={"message": "Not Found"})),
    )

    with pytest.raises(CommitLookupError):
        await provider.fetch_commit("octocat/shop", COMMIT_ID)


@pytest.mark.asyncio
async def test_github_transport_error_raises_lookup_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = GitHubProvider("octocat", "token", client=client_for(handler))

    with pytest.raises(CommitLookupError):
        await provider.fetch_commit("octocat/shop", COMMIT_ID)
