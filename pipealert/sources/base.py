"""Base class for git hosting commit providers."""

from abc import ABC, abstractmethod

import httpx

from pipealert.models.execution import Commit


class CommitProvider(ABC):
    """Resolves a repository/commit pair to commit metadata."""

    def __init__(self, username: str, password: str, client: httpx.AsyncClient | None = None):
        """Initialize provider.

        Args:
            username: API username
            password: App password or personal access token
            client: Shared HTTP client (optional)
        """
        self._auth = httpx.BasicAuth(username, password)
        self._client = client or httpx.AsyncClient(timeout=10.0, follow_redirects=True)

    @property
    @abstractmethod
    def provider_type(self) -> str:
        """Return provider identifier."""
        pass

    @abstractmethod
    async def fetch_commit(self, repo: str, commit_id: str) -> Commit:
        """Fetch commit metadata.

        Args:
            repo: Repository id, e.g. "workspace/repository"
            commit_id: Commit hash

        Returns:
            Commit metadata

        Raises:
            CommitLookupError: If the git host cannot return the commit
        """
        pass

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
