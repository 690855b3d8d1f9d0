"""Per-run memory management: history bounding and tool result caching."""

from dataclasses import dataclass

from loguru import logger

from issuebot.agent.cache import CacheStats, ToolResultCache
from issuebot.agent.compactor import ContextCompactor
from issuebot.agent.invalidation import CacheInvalidator, list_files_key, read_file_key
from issuebot.agent.messages import MessageHistory
from issuebot.agent.pruner import IterationPruner
from issuebot.agent.tools.base import Tool
from issuebot.agent.tools.wrappers import (
    CachedTool,
    CountedTool,
    DeltaDiffTool,
    KeyExtractor,
    OutputCapTool,
    ToolCallCounter,
    WriteInvalidatingTool,
)
from issuebot.config.schema import Config


@dataclass
class RunReport:
    """End-of-run memory statistics handed back to the orchestrator."""
    cache: CacheStats
    tool_calls: int
    messages: int


class AgentMemory:
    """
    Memory layer of a single agent run.

    Owns the run's tool result cache and applies pruning and compaction to
    the conversation history before every model call.  Nothing is shared
    between runs and nothing outlives the run.
    """

    def __init__(self, config: Config | None = None):
        self.config = config or Config()
        memory = self.config.memory

        self.cache = ToolResultCache(snapshot_prefixes=memory.cache.snapshot_prefixes)
        self.invalidator = CacheInvalidator(self.cache)
        self.counter = ToolCallCounter(self.config.tools.max_tool_calls)
        self.compactor = ContextCompactor(
            max_total_chars=memory.compaction.max_total_chars,
            max_tool_result_chars=memory.compaction.max_tool_result_chars,
            preserve_recent_count=memory.compaction.preserve_recent_count,
            text_preview_chars=memory.compaction.text_preview_chars,
        )
        self.pruner = IterationPruner(
            max_compressed_length=memory.pruning.max_compressed_length,
            prompt_preview_chars=memory.pruning.prompt_preview_chars,
            min_completed_iterations=memory.pruning.min_completed_iterations,
            delegation_tool=memory.pruning.delegation_tool,
            reviewer_role=memory.pruning.reviewer_role,
        )
        self._last_history_len = 0

    def before_model_call(self, history: MessageHistory) -> MessageHistory:
        """Bound the history in place before it is sent to the model.

        Pruning runs first so completed iterations shrink by their own
        rules; compaction then applies only if the history is still too
        large.
        """
        if self.config.memory.pruning.enabled:
            self.pruner.apply(history)
        if self.config.memory.compaction.enabled:
            self.compactor.apply(history)
        self._last_history_len = len(history)
        return history

    # ── Tool wrapping ───────────────────────────────────────────

    def wrap_read(self, tool: Tool, extract_key: KeyExtractor) -> Tool:
        """Wrap an idempotent read tool with caching, output cap and call counting."""
        if self.config.memory.cache.enabled:
            tool = CachedTool(tool, self.cache, extract_key)
        return self._finish(tool)

    def wrap_read_file(self, tool: Tool) -> Tool:
        return self.wrap_read(tool, read_file_key)

    def wrap_list_files(self, tool: Tool) -> Tool:
        return self.wrap_read(tool, list_files_key)

    def wrap_diff(self, tool: Tool) -> Tool:
        """Wrap a PR diff tool so re-fetches after a write return only the delta."""
        if self.config.memory.cache.enabled:
            tool = DeltaDiffTool(tool, self.cache)
        return self._finish(tool)

    def wrap_write(self, tool: Tool) -> Tool:
        """Wrap a file write tool so successful writes invalidate stale reads."""
        if self.config.memory.cache.enabled:
            tool = WriteInvalidatingTool(tool, self.invalidator)
        return self._finish(tool)

    def wrap(self, tool: Tool) -> Tool:
        """Wrap any other tool with output cap and call counting only."""
        return self._finish(tool)

    def _finish(self, tool: Tool) -> Tool:
        tool = OutputCapTool(tool, self.config.tools.output_cap)
        return CountedTool(tool, self.counter)

    # ── Reporting ───────────────────────────────────────────────

    def report(self) -> RunReport:
        return RunReport(
            cache=self.cache.stats(),
            tool_calls=self.counter.count,
            messages=self._last_history_len,
        )

    def log_report(self) -> RunReport:
        report = self.report()
        logger.info(f"Cache stats: {report.cache}")
        logger.info(
            f"Run totals: {report.tool_calls} tool calls, "
            f"{report.messages} messages at last model call"
        )
        return report
