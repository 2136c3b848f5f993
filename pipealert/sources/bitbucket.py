"""Bitbucket commit provider."""

import re

import httpx

from pipealert.core.errors import CommitLookupError
from pipealert.core.logging import get_logger
from pipealert.models.execution import Commit
from pipealert.sources.base import CommitProvider

logger = get_logger(__name__)

BITBUCKET_API_URL = "https://api.bitbucket.org/2.0"

_EMAIL_PATTERN = re.compile(r"<([^>]+)>")


class BitBucketProvider(CommitProvider):
    """Bitbucket Cloud REST API provider.

    https://developer.atlassian.com/cloud/bitbucket/rest/api-group-commits/
    """

    @property
    def provider_type(self) -> str:
        return "bitbucket"

    async def fetch_commit(self, repo: str, commit_id: str) -> Commit:
        """Fetch commit metadata from Bitbucket.

        Args:
            repo: Repository id in the format "{workspace}/{repository}"
            commit_id: Commit hash

        Returns:
            Commit metadata, with the author email parsed from the raw author
        """
        url = f"{BITBUCKET_API_URL}/repositories/{repo}/commit/{commit_id}"

        try:
            response = await self._client.get(url, auth=self._auth)
            response.raise_for_status()
            body = response.json()
            author_raw = body["author"]["raw"]
            summary = body["summary"]["raw"]
            link = body["links"]["html"]["href"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise CommitLookupError(f"Bitbucket commit {repo}@{commit_id}: {e}") from e

        email_match = _EMAIL_PATTERN.search(author_raw)

        logger.debug("Fetched Bitbucket commit", repo=repo, commit_id=commit_id)

        return Commit(
            id=commit_id,
            author=author_raw,
            author_email=email_match.group(1) if email_match else None,
            summary=summary,
            link=link,
        )
