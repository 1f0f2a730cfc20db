"""
Git Fetcher - Local snapshots of upstream repositories.

Snapshots are cached under <cache_dir>/<host>/<path-without-.git> and
reused between runs. libgit2 calls are blocking, so every operation
runs in a worker thread.
"""

import asyncio
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import pygit2

from core.exceptions import FetchError
from metric_adapters.models import FetchResult


logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 1
ORIGIN = "origin"
_UNSAFE_PATH_CHARS = "/:?&="


def sanitize_path(value: str) -> str:
    """Flatten a string into a single directory name."""
    for ch in _UNSAFE_PATH_CHARS:
        value = value.replace(ch, "_")
    return value


def cache_path_for(cache_dir: str, repo_url: str) -> Path:
    """
    Return the snapshot directory for a repository URL.

    https://github.com/org/repo.git -> <cache_dir>/github.com/org/repo
    URLs without a host fall back to a single sanitized directory name.
    """
    parsed = urlparse(repo_url)
    path = parsed.path
    if path.endswith(".git"):
        path = path[: -len(".git")]
    path = path.strip("/")
    if not parsed.netloc or not path:
        return Path(cache_dir) / sanitize_path(repo_url)
    return Path(cache_dir, parsed.netloc, *path.split("/"))


class GitFetcher:
    """
    Produces local working trees of remote repositories.

    Usage:
        fetcher = GitFetcher("/var/cache/metric-library")
        result = await fetcher.fetch("https://github.com/prometheus/node_exporter")
    """

    def __init__(
        self,
        cache_dir: str,
        shallow: bool = True,
        depth: int = DEFAULT_DEPTH,
    ) -> None:
        self._cache_dir = cache_dir
        self._shallow = shallow
        self._depth = depth if depth > 0 else DEFAULT_DEPTH

    @property
    def cache_dir(self) -> str:
        return self._cache_dir

    def repo_dir(self, repo_url: str, cache_dir: Optional[str] = None) -> Path:
        return cache_path_for(cache_dir or self._cache_dir, repo_url)

    async def fetch(
        self,
        repo_url: str,
        commit: str = "",
        force: bool = False,
        cache_dir: Optional[str] = None,
    ) -> FetchResult:
        """
        Acquire a snapshot of repo_url.

        Args:
            repo_url: Remote repository URL or local path
            commit: Revision to check out; HEAD of the default branch when empty
            force: Discard any cached snapshot and clone again
            cache_dir: Override the fetcher's cache root for this call

        Returns:
            FetchResult with local path, resolved commit and commit timestamp

        Raises:
            FetchError: On network, permission or unknown-commit failures
        """
        repo_dir = self.repo_dir(repo_url, cache_dir)
        return await asyncio.to_thread(self._fetch_sync, repo_url, repo_dir, commit, force)

    # ─────────────────────────────────────────────────────────────
    # Blocking implementation
    # ─────────────────────────────────────────────────────────────

    def _fetch_sync(
        self,
        repo_url: str,
        repo_dir: Path,
        commit: str,
        force: bool,
    ) -> FetchResult:
        try:
            if (repo_dir / ".git").exists() and not force:
                repo = self._open_existing(repo_url, repo_dir, commit)
            else:
                repo = self._clone(repo_url, repo_dir, force)

            if commit:
                self._checkout(repo, commit)

            head = repo.head.peel(pygit2.Commit)
        except FetchError:
            raise
        except (pygit2.GitError, KeyError, ValueError, OSError) as e:
            raise FetchError(
                f"failed to fetch {repo_url}: {e}",
                repo_url=repo_url,
                commit=commit or None,
                original_error=e,
            ) from e

        return FetchResult(
            repo_path=str(repo_dir),
            commit=str(head.id),
            timestamp=datetime.fromtimestamp(head.author.time, tz=timezone.utc),
        )

    def _clone(self, repo_url: str, repo_dir: Path, force: bool) -> pygit2.Repository:
        repo_dir.parent.mkdir(parents=True, exist_ok=True)
        if force and repo_dir.exists():
            logger.info(f"Discarding cached snapshot at {repo_dir}")
            shutil.rmtree(repo_dir)

        depth = self._depth if self._shallow else 0
        logger.info(f"Cloning {repo_url} into {repo_dir} (depth={depth or 'full'})")
        return pygit2.clone_repository(repo_url, str(repo_dir), depth=depth)

    def _open_existing(self, repo_url: str, repo_dir: Path, commit: str) -> pygit2.Repository:
        repo = pygit2.Repository(str(repo_dir))
        if not commit:
            self._pull(repo, repo_url)
        return repo

    def _pull(self, repo: pygit2.Repository, repo_url: str) -> None:
        """Fetch origin and hard-reset to its tip; a cached snapshot is kept if the remote is unreachable."""
        try:
            remote = repo.remotes[ORIGIN]
            remote.fetch(depth=self._depth if self._shallow else 0)
        except (pygit2.GitError, KeyError) as e:
            logger.warning(f"Pull of {repo_url} failed, using cached snapshot: {e}")
            return

        target = self._remote_tip(repo)
        if target is None:
            logger.warning(f"No remote-tracking branch for {repo_url}, using cached snapshot")
            return
        if repo.head_is_detached:
            repo.checkout_tree(repo.get(target), strategy=pygit2.enums.CheckoutStrategy.FORCE)
            repo.set_head(target)
        else:
            repo.reset(target, pygit2.enums.ResetMode.HARD)

    @staticmethod
    def _remote_tip(repo: pygit2.Repository) -> Optional[pygit2.Oid]:
        candidates = []
        if not repo.head_is_detached:
            candidates.append(f"refs/remotes/{ORIGIN}/{repo.head.shorthand}")
        candidates.extend([
            f"refs/remotes/{ORIGIN}/HEAD",
            f"refs/remotes/{ORIGIN}/main",
            f"refs/remotes/{ORIGIN}/master",
        ])
        for name in candidates:
            ref = repo.references.get(name)
            if ref is not None:
                return ref.resolve().target
        return None

    def _checkout(self, repo: pygit2.Repository, commit: str) -> None:
        target = self._resolve_commit(repo, commit)
        if target is None:
            # Shallow snapshots rarely contain the pinned revision.
            try:
                repo.remotes[ORIGIN].fetch([commit], depth=self._depth if self._shallow else 0)
            except (pygit2.GitError, KeyError) as e:
                raise FetchError(
                    f"unknown commit {commit}: {e}",
                    commit=commit,
                    original_error=e,
                ) from e
            target = self._resolve_commit(repo, commit)
        if target is None:
            raise FetchError(f"unknown commit {commit}", commit=commit)

        repo.checkout_tree(target, strategy=pygit2.enums.CheckoutStrategy.FORCE)
        repo.set_head(target.id)
        logger.debug(f"Checked out {target.id} in {repo.workdir}")

    @staticmethod
    def _resolve_commit(repo: pygit2.Repository, commit: str) -> Optional[pygit2.Commit]:
        try:
            return repo.revparse_single(commit).peel(pygit2.Commit)
        except (KeyError, ValueError, pygit2.GitError):
            return None
