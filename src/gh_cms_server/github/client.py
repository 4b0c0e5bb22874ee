"""
GitHub Blob Store

This module implements the ``BlobStore`` interface on top of the GitHub REST
API. File contents live under ``/repos/{owner}/{repo}/contents`` and branch
manipulation goes through the git refs and merges endpoints.

Design Goals
------------
- One pooled ``httpx.AsyncClient`` for the whole process, never rebuilt per call
- The pooled client carries no caller state; credentials are bound per store
- Every transport or HTTP failure surfaces as ``StoreError``
- No retries: callers decide whether to retry a whole operation
"""

from __future__ import annotations

import base64
import logging
from functools import lru_cache
from typing import Any, Dict, NoReturn, Optional, Tuple
from urllib.parse import quote

import httpx

from ..config import settings
from ..core.errors import BlobNotFoundError, MergeConflictError, StoreError
from ..store.base import BlobStore

logger = logging.getLogger("cms.github")


# ---------------------------------------------------------------------
# Shared HTTP Client
# ---------------------------------------------------------------------

@lru_cache
def get_http_client() -> httpx.AsyncClient:
    """
    Return the process-wide pooled HTTP client.

    The client only holds connection-pool state, the base URL, a fixed
    timeout and static headers, so sharing it across concurrent requests
    is safe.
    """
    return httpx.AsyncClient(
        base_url=str(settings.github_api_base_url),
        timeout=settings.request_timeout_seconds,
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive_connections,
            keepalive_expiry=settings.keepalive_expiry_seconds,
        ),
        headers={
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": settings.github_api_version,
        },
    )


async def close_http_client() -> None:
    """Close the pooled client (application shutdown)."""
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
        get_http_client.cache_clear()


# ---------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------

class GitHubBlobStore(BlobStore):
    """
    Blob store bound to one repository and one caller credential.

    Instances are cheap: they wrap the shared client with an access token
    and an ``{owner, repo}`` coordinate.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        owner: str,
        repo: str,
    ) -> None:
        self._client = client
        self._token = token
        self.owner = owner
        self.repo = repo
        self._default_branch: Optional[str] = None

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    @property
    def _repo_url(self) -> str:
        return f"/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"

    def _contents_url(self, path: str) -> str:
        return f"{self._repo_url}/contents/{quote(path, safe='/')}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Issue an authenticated request against the GitHub API.

        Transport failures (timeouts, connection errors) are converted to
        ``StoreError``; HTTP status handling is left to the caller.
        """
        request_headers = {"Authorization": f"Bearer {self._token}"}
        if headers:
            request_headers.update(headers)

        try:
            return await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            logger.error(
                "GitHub %s %s failed: %s",
                method,
                url,
                type(exc).__name__,
            )
            raise StoreError(
                f"GitHub request failed: {type(exc).__name__}"
            ) from exc

    def _fail(self, resp: httpx.Response, action: str) -> NoReturn:
        logger.error(
            "GitHub %s failed for %s/%s: HTTP %s",
            action,
            self.owner,
            self.repo,
            resp.status_code,
        )
        raise StoreError(f"GitHub {action} failed with HTTP {resp.status_code}")

    async def _get_contents(
        self,
        path: str,
        ref: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """Return the contents-API entry for ``path`` or None if missing."""
        params = {"ref": ref} if ref else None
        resp = await self._request("GET", self._contents_url(path), params=params)

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            self._fail(resp, f"read of {path}")

        data = resp.json()
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise StoreError(f"Path is not a file: {path}")
        return data

    # ------------------------------------------------------------------
    # Blobs
    # ------------------------------------------------------------------

    async def get_blob(self, path: str, ref: Optional[str] = None) -> bytes:
        entry = await self._get_contents(path, ref)
        if entry is None:
            raise BlobNotFoundError(path, ref)

        if entry.get("encoding") == "base64":
            return base64.b64decode(entry.get("content", ""))

        # Files above the inline size limit come back without content.
        params = {"ref": ref} if ref else None
        resp = await self._request(
            "GET",
            self._contents_url(path),
            params=params,
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        if resp.status_code == 404:
            raise BlobNotFoundError(path, ref)
        if resp.status_code != 200:
            self._fail(resp, f"raw read of {path}")
        return resp.content

    async def put_blob(
        self,
        path: str,
        message: str,
        content: bytes,
        ref: Optional[str] = None,
    ) -> None:
        existing = await self._get_contents(path, ref)

        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
        }
        if ref:
            body["branch"] = ref
        if existing is not None:
            body["sha"] = existing["sha"]

        resp = await self._request("PUT", self._contents_url(path), json=body)
        if resp.status_code not in (200, 201):
            self._fail(resp, f"write of {path}")

        logger.debug("Wrote %s on %s", path, ref or "default branch")

    async def delete_blob(
        self,
        path: str,
        message: str,
        ref: Optional[str] = None,
    ) -> None:
        existing = await self._get_contents(path, ref)
        if existing is None:
            raise BlobNotFoundError(path, ref)

        body: Dict[str, Any] = {"message": message, "sha": existing["sha"]}
        if ref:
            body["branch"] = ref

        resp = await self._request("DELETE", self._contents_url(path), json=body)
        if resp.status_code == 404:
            raise BlobNotFoundError(path, ref)
        if resp.status_code != 200:
            self._fail(resp, f"delete of {path}")

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def default_branch(self) -> str:
        if self._default_branch is None:
            resp = await self._request("GET", self._repo_url)
            if resp.status_code != 200:
                self._fail(resp, "repository lookup")
            self._default_branch = resp.json()["default_branch"]
        return self._default_branch

    async def create_branch(self, name: str, source_ref: Optional[str] = None) -> None:
        source = source_ref or await self.default_branch()

        resp = await self._request(
            "GET",
            f"{self._repo_url}/git/ref/heads/{quote(source, safe='/')}",
        )
        if resp.status_code != 200:
            self._fail(resp, f"ref lookup of {source}")
        sha = resp.json()["object"]["sha"]

        resp = await self._request(
            "POST",
            f"{self._repo_url}/git/refs",
            json={"ref": f"refs/heads/{name}", "sha": sha},
        )
        if resp.status_code != 201:
            self._fail(resp, f"branch creation of {name}")

    async def merge_branch(
        self,
        head: str,
        message: str,
        base: Optional[str] = None,
    ) -> None:
        target = base or await self.default_branch()

        resp = await self._request(
            "POST",
            f"{self._repo_url}/merges",
            json={"base": target, "head": head, "commit_message": message},
        )
        # 201: merged, 204: nothing to merge
        if resp.status_code in (201, 204):
            return
        if resp.status_code == 409:
            logger.error("Merge conflict merging %s into %s", head, target)
            raise MergeConflictError(f"Merge conflict merging {head} into {target}")
        self._fail(resp, f"merge of {head} into {target}")

    async def delete_branch(self, name: str) -> None:
        resp = await self._request(
            "DELETE",
            f"{self._repo_url}/git/refs/heads/{quote(name, safe='/')}",
        )
        if resp.status_code != 204:
            self._fail(resp, f"branch deletion of {name}")

    async def is_empty(self) -> Tuple[bool, str]:
        branch = await self.default_branch()

        resp = await self._request(
            "GET",
            f"{self._repo_url}/commits",
            params={"sha": branch, "per_page": 1},
        )
        # GitHub answers 409 "Git Repository is empty" when there are no commits.
        if resp.status_code == 409:
            return True, branch
        if resp.status_code != 200:
            self._fail(resp, "commit listing")
        return False, branch
