"""GitHub API client - refs, contents, comments, reactions."""

import base64
import binascii
from datetime import datetime, timezone
from typing import Any

import httpx
import jwt
import structlog

from src.locks.store import ContentConflictError, RefExistsError, RefNotFoundError
from src.orchestrator.config import Settings

logger = structlog.get_logger()


class GitHubClient:
    """GitHub API client using a token or App authentication."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.api_url = settings.github_api_url.rstrip("/")
        self._transport = transport
        self._installation_tokens: dict[str, tuple[str, datetime]] = {}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self.settings.http_timeout_seconds,
        )

    def _generate_jwt(self) -> str:
        """Generate JWT for GitHub App authentication."""
        now = datetime.now(timezone.utc)
        payload = {
            "iat": int(now.timestamp()) - 60,  # 1 minute ago
            "exp": int(now.timestamp()) + 600,  # 10 minutes from now
            "iss": self.settings.github_app_id,
        }
        return jwt.encode(
            payload,
            self.settings.github_app_private_key,
            algorithm="RS256",
        )

    async def _get_token(self, repo: str) -> str:
        """Get an access token for a repository."""
        if self.settings.github_token:
            return self.settings.github_token

        # Check cache
        if repo in self._installation_tokens:
            token, expires = self._installation_tokens[repo]
            if datetime.now(timezone.utc) < expires:
                return token

        async with self._client() as client:
            jwt_token = self._generate_jwt()
            headers = {
                "Authorization": f"Bearer {jwt_token}",
                "Accept": "application/vnd.github+json",
            }

            # Get installation for repo
            resp = await client.get(f"{self.api_url}/repos/{repo}/installation", headers=headers)
            resp.raise_for_status()
            installation_id = resp.json()["id"]

            # Get access token
            resp = await client.post(
                f"{self.api_url}/app/installations/{installation_id}/access_tokens",
                headers=headers,
            )
            resp.raise_for_status()
            data = resp.json()

            token = data["token"]
            expires = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))

            self._installation_tokens[repo] = (token, expires)
            return token

    async def _send(
        self,
        method: str,
        repo: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make authenticated request to GitHub API, raising on error status."""
        token = await self._get_token(repo)

        async with self._client() as client:
            resp = await client.request(
                method,
                f"{self.api_url}/repos/{repo}{path}",
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/vnd.github+json",
                },
                **kwargs,
            )
            resp.raise_for_status()
            return resp

    async def _request(
        self,
        method: str,
        repo: str,
        path: str,
        **kwargs: Any,
    ) -> Any:
        """Make authenticated request to GitHub API and return the JSON body."""
        resp = await self._send(method, repo, path, **kwargs)
        return resp.json() if resp.content else {}

    # === Branches and refs ===

    async def get_default_branch(self, repo: str) -> str:
        """Get the default branch of a repository."""
        result = await self._request("GET", repo, "")
        return result.get("default_branch", "main")

    async def get_branch_sha(self, repo: str, branch: str) -> str:
        """Get the SHA of a branch."""
        result = await self._request("GET", repo, f"/git/ref/heads/{branch}")
        return result["object"]["sha"]

    async def branch_exists(self, repo: str, branch: str) -> bool:
        try:
            await self._request("GET", repo, f"/branches/{branch}")
            return True
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return False
            raise

    async def create_ref(self, repo: str, branch: str, sha: str) -> dict[str, Any]:
        """Create a branch; raises RefExistsError if it already exists."""
        try:
            result = await self._request(
                "POST",
                repo,
                "/git/refs",
                json={"ref": f"refs/heads/{branch}", "sha": sha},
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 422 and "already exists" in _error_message(e.response):
                raise RefExistsError(f"branch already exists: {branch}") from e
            raise
        logger.info("Created branch", repo=repo, branch=branch)
        return result

    async def delete_ref(self, repo: str, branch: str) -> int:
        """Delete a branch, returning the response status code."""
        try:
            resp = await self._send("DELETE", repo, f"/git/refs/heads/{branch}")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404 or (
                status == 422 and "Reference does not exist" in _error_message(e.response)
            ):
                raise RefNotFoundError(f"branch does not exist: {branch}") from e
            raise
        logger.info("Deleted branch", repo=repo, branch=branch, status=resp.status_code)
        return resp.status_code

    # === File Operations ===

    async def get_file_content(
        self,
        repo: str,
        path: str,
        branch: str | None = None,
    ) -> bytes | None:
        """Get content of a file from the repository.

        Args:
            repo: Repository in "owner/name" format
            path: Path to file in repository
            branch: Branch to read from (defaults to repo's default branch)

        Returns:
            Raw file bytes, or None if file doesn't exist
        """
        try:
            params = {}
            if branch:
                params["ref"] = branch

            result = await self._request(
                "GET",
                repo,
                f"/contents/{path}",
                params=params if params else None,
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise

        # Content is base64 encoded, with newlines
        content = result.get("content", "").replace("\n", "")
        try:
            return base64.b64decode(content)
        except binascii.Error:
            # Surfaced to callers as undecodable record bytes
            return content.encode("utf-8")

    async def create_file(
        self,
        repo: str,
        path: str,
        content: bytes,
        message: str,
        branch: str,
    ) -> dict[str, Any]:
        """Create a file; raises ContentConflictError if it already exists.

        No blob sha is sent, so GitHub rejects the write when the file is
        already present on the branch.
        """
        try:
            result = await self._request(
                "PUT",
                repo,
                f"/contents/{path}",
                json={
                    "message": message,
                    "content": base64.b64encode(content).decode("ascii"),
                    "branch": branch,
                },
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (409, 422):
                raise ContentConflictError(f"{path} already exists on {branch}") from e
            raise
        logger.info("Created file", repo=repo, path=path, branch=branch)
        return result

    async def create_or_update_file(
        self,
        repo: str,
        path: str,
        content: bytes,
        message: str,
        branch: str | None = None,
    ) -> dict[str, Any]:
        """Create or update a file in the repository.

        Args:
            repo: Repository in "owner/name" format
            path: Path to file in repository
            content: New file content
            message: Commit message
            branch: Branch to update (defaults to repo's default branch)

        Returns:
            API response with commit info
        """
        # Get current file SHA if it exists (needed for updates)
        sha = None
        try:
            params = {}
            if branch:
                params["ref"] = branch

            existing = await self._request(
                "GET",
                repo,
                f"/contents/{path}",
                params=params if params else None,
            )
            sha = existing.get("sha")
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise

        data: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
        }

        if sha:
            data["sha"] = sha

        if branch:
            data["branch"] = branch

        result = await self._request(
            "PUT",
            repo,
            f"/contents/{path}",
            json=data,
        )

        action = "Updated" if sha else "Created"
        logger.info(f"{action} file", repo=repo, path=path)
        return result

    # === Comments and reactions ===

    async def create_issue_comment(
        self,
        repo: str,
        issue_number: int,
        body: str,
    ) -> dict[str, Any]:
        """Create a comment on an issue or PR."""
        result = await self._request(
            "POST",
            repo,
            f"/issues/{issue_number}/comments",
            json={"body": body},
        )
        logger.info("Created comment", repo=repo, issue=issue_number)
        return result

    async def add_comment_reaction(
        self,
        repo: str,
        comment_id: int,
        content: str,
    ) -> dict[str, Any]:
        """React to an issue comment (eyes, rocket, -1, ...)."""
        return await self._request(
            "POST",
            repo,
            f"/issues/comments/{comment_id}/reactions",
            json={"content": content},
        )

    async def delete_comment_reaction(
        self,
        repo: str,
        comment_id: int,
        reaction_id: int,
    ) -> None:
        try:
            await self._send(
                "DELETE",
                repo,
                f"/issues/comments/{comment_id}/reactions/{reaction_id}",
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise

    # === Pull requests and permissions ===

    async def get_pull_request(self, repo: str, pr_number: int) -> dict[str, Any]:
        return await self._request("GET", repo, f"/pulls/{pr_number}")

    async def get_collaborator_permission(self, repo: str, username: str) -> str:
        """Permission level of a user: admin, maintain, write, triage, read or none."""
        result = await self._request("GET", repo, f"/collaborators/{username}/permission")
        return result.get("permission", "none")


def _error_message(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("message", ""))
    except ValueError:
        return resp.text
