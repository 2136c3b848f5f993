"""GitHub commit provider."""

import httpx

from pipealert.core.errors import CommitLookupError
from pipealert.core.logging import get_logger
from pipealert.models.execution import Commit
from pipealert.sources.base import CommitProvider

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubProvider(CommitProvider):
    """GitHub git database API provider.

    Renamed repositories answer with a redirect which the HTTP client follows.
    """

    HEADERS = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": "aws-codepipeline",
    }

    @property
    def provider_type(self) -> str:
        return "github"

    async def fetch_commit(self, repo: str, commit_id: str) -> Commit:
        """Fetch commit metadata from GitHub.

        Args:
            repo: Repository id in the format "{owner}/{repository}"
            commit_id: Commit hash

        Returns:
            Commit metadata
        """
        url = f"{GITHUB_API_URL}/repos/{repo}/git/commits/{commit_id}"

        try:
            response = await self._client.get(url, auth=self._auth, headers=self.HEADERS)
            response.raise_for_status()
            body = response.json()
            author = body["author"]
            author_line = f"{author['name']} <{author['email']}>"
            summary = body["message"]
            link = body["html_url"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise CommitLookupError(f"GitHub commit {repo}@{commit_id}: {e}") from e

        logger.debug("Fetched GitHub commit", repo=repo, commit_id=commit_id)

        return Commit(
            id=commit_id,
            author=author_line,
            author_email=author.get("email"),
            summary=summary,
            link=link,
        )
