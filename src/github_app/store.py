"""Lock store backed by a GitHub repository's branches and contents."""

from .client import GitHubClient


class GitHubLockStore:
    """LockStore bound to one repository."""

    def __init__(self, client: GitHubClient, repo: str):
        self.client = client
        self.repo = repo

    async def branch_exists(self, name: str) -> bool:
        return await self.client.branch_exists(self.repo, name)

    async def create_branch(self, name: str, from_sha: str) -> None:
        await self.client.create_ref(self.repo, name, from_sha)

    async def default_branch_head(self) -> str:
        default_branch = await self.client.get_default_branch(self.repo)
        return await self.client.get_branch_sha(self.repo, default_branch)

    async def read_file(self, path: str, ref: str) -> bytes | None:
        return await self.client.get_file_content(self.repo, path, branch=ref)

    async def write_file(
        self,
        path: str,
        ref: str,
        content: bytes,
        message: str,
        overwrite: bool = False,
    ) -> None:
        if overwrite:
            await self.client.create_or_update_file(self.repo, path, content, message, branch=ref)
        else:
            await self.client.create_file(self.repo, path, content, message, branch=ref)

    async def delete_ref(self, name: str) -> int:
        return await self.client.delete_ref(self.repo, name)
