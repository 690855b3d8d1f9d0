"""Tool wrappers: caching, write invalidation, diff deltas, output caps, call limits."""

from typing import Any, Callable

from loguru import logger

from issuebot.agent.cache import ToolResultCache, is_error_result
from issuebot.agent.delta import compute_delta
from issuebot.agent.invalidation import CacheInvalidator, pr_diff_key
from issuebot.agent.tools.base import Tool

KeyExtractor = Callable[[dict[str, Any]], "str | None"]

DEFAULT_OUTPUT_CAP = 10_000


class ToolWrapper(Tool):
    """A tool that forwards its identity to the tool it wraps."""

    def __init__(self, inner: Tool):
        self.inner = inner

    @property
    def name(self) -> str:
        return self.inner.name

    @property
    def description(self) -> str:
        return self.inner.description

    @property
    def parameters(self) -> dict[str, Any]:
        return self.inner.parameters

    async def execute(self, **kwargs: Any) -> str:
        return await self.inner.execute(**kwargs)


class CachedTool(ToolWrapper):
    """Serves repeated idempotent reads from the run's cache.

    ``extract_key`` maps parsed arguments to a cache key; returning None
    bypasses the cache completely (no hit or miss, nothing stored).
    """

    def __init__(self, inner: Tool, cache: ToolResultCache, extract_key: KeyExtractor):
        super().__init__(inner)
        self.cache = cache
        self.extract_key = extract_key

    async def execute(self, **kwargs: Any) -> str:
        key = self.extract_key(kwargs)
        if key is None:
            logger.debug(f"Cache bypass: {self.name}")
            return await self.inner.execute(**kwargs)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {self.name} | {key}")
            return cached

        result = await self.inner.execute(**kwargs)
        return self.store(key, result)

    def store(self, key: str, result: str) -> str:
        self.cache.set(key, result)
        return result


class DeltaDiffTool(CachedTool):
    """Cached PR-diff reads that shrink to a delta after an invalidation.

    The first fetch of a PR's diff is cached as-is.  Once a write has
    invalidated it, the next fetch is compared with the diff seen before
    and only new or changed files are returned (and cached).  Error
    results skip the comparison.
    """

    def __init__(self, inner: Tool, cache: ToolResultCache, extract_key: KeyExtractor = pr_diff_key):
        super().__init__(inner, cache, extract_key)

    def store(self, key: str, result: str) -> str:
        previous = self.cache.previous.get(key)
        if previous is None:
            self.cache.set(key, result)
            return result

        if is_error_result(result):
            # Keep the last good diff as the comparison point
            self.cache.set(key, result, baseline=previous)
            return result

        delta = compute_delta(previous, result)
        logger.debug(f"Diff delta for {key}: {len(result)} -> {len(delta)} chars")
        self.cache.set(key, delta, baseline=result)
        return delta


class WriteInvalidatingTool(ToolWrapper):
    """Invalidates stale cache entries after a successful file write."""

    def __init__(self, inner: Tool, invalidator: CacheInvalidator):
        super().__init__(inner)
        self.invalidator = invalidator

    async def execute(self, **kwargs: Any) -> str:
        result = await self.inner.execute(**kwargs)

        path = kwargs.get("path")
        if path and not is_error_result(result):
            self.invalidator.on_write(path, kwargs.get("branch"))
        return result


class OutputCapTool(ToolWrapper):
    """Truncates string results longer than ``max_chars``."""

    def __init__(self, inner: Tool, max_chars: int = DEFAULT_OUTPUT_CAP):
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        super().__init__(inner)
        self.max_chars = max_chars

    async def execute(self, **kwargs: Any) -> str:
        result = await self.inner.execute(**kwargs)
        if isinstance(result, str) and len(result) > self.max_chars:
            return (
                result[:self.max_chars]
                + f"\n[... output truncated at {self.max_chars} chars "
                f"(original: {len(result)} chars). Use more targeted queries to get specific data.]"
            )
        return result


class CircuitBreakerError(RuntimeError):
    """Raised when a run exceeds its tool call limit."""

    def __init__(self, message: str, call_count: int, call_limit: int):
        super().__init__(message)
        self.call_count = call_count
        self.call_limit = call_limit


class ToolCallCounter:
    """Counts tool calls across all tools of one run and trips past the limit."""

    def __init__(self, limit: int):
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.limit = limit
        self.count = 0

    def increment(self, tool_name: str) -> None:
        self.count += 1
        if self.count > self.limit:
            raise CircuitBreakerError(
                f"Circuit breaker tripped: {self.count} tool calls exceeded limit of {self.limit}. "
                f"Last tool: {tool_name}. Stopping agent to prevent runaway execution.",
                self.count,
                self.limit,
            )


class CountedTool(ToolWrapper):
    """Increments the run's call counter before every call, cached or not."""

    def __init__(self, inner: Tool, counter: ToolCallCounter):
        super().__init__(inner)
        self.counter = counter

    async def execute(self, **kwargs: Any) -> str:
        self.counter.increment(self.name)
        return await self.inner.execute(**kwargs)
