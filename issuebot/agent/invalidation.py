"""Cache keys for read tools and write-triggered invalidation."""

from typing import Any

from loguru import logger

from issuebot.agent.cache import ToolResultCache

DEFAULT_BRANCH = "main"
DEFAULT_TREE_DEPTH = 1


def _normalize_path(path: Any) -> str:
    path = str(path or "").strip()
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def _branch(args: dict[str, Any]) -> str:
    return str(args.get("branch") or DEFAULT_BRANCH)


# ── Key extractors ──────────────────────────────────────────────
# Each returns None when the call is not safely cacheable.


def read_file_key(args: dict[str, Any]) -> str | None:
    """``file:<path>:<branch>``. Line-range reads are not cached."""
    if args.get("start_line") is not None or args.get("end_line") is not None:
        return None
    path = _normalize_path(args.get("path"))
    if not path:
        return None
    return f"file:{path}:{_branch(args)}"


def list_files_key(args: dict[str, Any]) -> str | None:
    """``tree:<subpath>:d<depth>:<branch>``.

    The branch comes last so one branch's listings can be invalidated
    together by prefix and suffix, whatever their subpath and depth.
    """
    depth = args.get("depth", DEFAULT_TREE_DEPTH)
    return f"tree:{_normalize_path(args.get('path'))}:d{depth}:{_branch(args)}"


def pr_diff_key(args: dict[str, Any]) -> str | None:
    """``diff:<pull_number>``."""
    number = args.get("pull_number")
    if number is None or number == "":
        return None
    return f"diff:{number}"


class CacheInvalidator:
    """Drops cache entries a successful file write may have made stale."""

    def __init__(self, cache: ToolResultCache):
        self.cache = cache

    def on_write(self, path: str, branch: str | None = None) -> int:
        """Invalidate after a write to (path, branch).

        Removes the file's own entry, every tree listing on that branch,
        and every PR diff, since any open PR may include the branch.

        Returns:
            Count of entries removed.
        """
        path = _normalize_path(path)
        branch = branch or DEFAULT_BRANCH
        if not path:
            return 0

        removed = int(self.cache.invalidate(f"file:{path}:{branch}"))
        removed += self.cache.invalidate_by_prefix_and_suffix("tree:", f":{branch}")
        removed += self.cache.invalidate_by_prefix("diff:")

        if removed:
            logger.debug(f"Cache invalidated {removed} entries after write to {path}@{branch}")
        return removed
