"""GitHub REST API client for pull request management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .exceptions import GitHubError
from .models import PullRequest, RepoInfo

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
USER_AGENT = "ai-git-wizard"


@dataclass(frozen=True)
class TokenCheck:
    valid: bool
    user: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RepositoryStatus:
    exists: bool
    default_branch: Optional[str] = None


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".rstrip()


class GitHubClient:
    """Pull request operations bound to one token and one repository."""

    def __init__(
        self,
        token: str,
        repo: Optional[RepoInfo] = None,
        api_url: str = GITHUB_API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.repo = repo
        self._api_url = api_url.rstrip("/")
        self._headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        self._client = http_client or httpx.AsyncClient(timeout=30.0)

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def _repo_path(self) -> str:
        if self.repo is None:
            raise GitHubError("No GitHub repository configured for this client")
        return f"/repos/{self.repo.owner}/{self.repo.name}"

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        url = f"{self._api_url}{path}"
        logger.debug("github.%s %s params=%s", method.lower(), url, params)
        try:
            return await self._client.request(
                method, url, headers=self._headers, params=params, json=json
            )
        except httpx.HTTPError as e:
            raise GitHubError(f"GitHub request failed: {method} {path}: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise GitHubError(
            f"Failed to {action}: GitHub API error: "
            f"{_status_line(response)}\n{response.text}"
        )

    async def create_pull_request(
        self,
        branch_name: str,
        title: str,
        description: str,
        base_branch: str = "main",
    ) -> PullRequest:
        response = await self._request(
            "POST",
            f"{self._repo_path}/pulls",
            json={
                "title": title,
                "body": description,
                "head": branch_name,
                "base": base_branch,
            },
        )
        self._raise_for_status(response, "create pull request")
        return PullRequest.from_api(response.json())

    async def update_pull_request(
        self, pr_number: int, title: str, description: str
    ) -> PullRequest:
        response = await self._request(
            "PATCH",
            f"{self._repo_path}/pulls/{pr_number}",
            json={"title": title, "body": description},
        )
        self._raise_for_status(response, "update pull request")
        return PullRequest.from_api(response.json())

    async def find_existing_pr(self, branch_name: str) -> Optional[PullRequest]:
        """Return the first open PR whose head is ``branch_name``.

        Lookup failures are logged and reported as no PR: the create call
        that follows surfaces the underlying problem with its own error.
        """
        try:
            response = await self._request(
                "GET",
                f"{self._repo_path}/pulls",
                params={"head": f"{self.repo.owner}:{branch_name}", "state": "open"},
            )
            self._raise_for_status(response, "list pull requests")
            prs = response.json()
        except (GitHubError, ValueError) as e:
            logger.warning("Could not check for existing PRs: %s", e)
            return None
        if not isinstance(prs, list) or not prs:
            return None
        return PullRequest.from_api(prs[0])

    async def test_token(self) -> TokenCheck:
        """Check that the token authenticates; never raises."""
        try:
            response = await self._request("GET", "/user")
        except GitHubError as e:
            return TokenCheck(valid=False, error=str(e))
        if not response.is_success:
            return TokenCheck(valid=False, error=_status_line(response))
        try:
            login = response.json().get("login")
        except ValueError as e:
            return TokenCheck(valid=False, error=f"Invalid response: {e}")
        return TokenCheck(valid=True, user=login)

    async def get_repository(self) -> RepositoryStatus:
        """Report whether the bound repository is visible to the token."""
        try:
            response = await self._request("GET", self._repo_path)
        except GitHubError:
            return RepositoryStatus(exists=False)
        if not response.is_success:
            return RepositoryStatus(exists=False)
        try:
            data = response.json()
        except ValueError:
            return RepositoryStatus(exists=False)
        return RepositoryStatus(exists=True, default_branch=data.get("default_branch"))
