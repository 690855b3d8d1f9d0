"""Size-triggered compaction of the conversation history."""

import json

from loguru import logger

from issuebot.agent.messages import (
    AssistantText,
    AssistantToolCall,
    MessageHistory,
    ToolCall,
    ToolResult,
)
from issuebot.agent.tokens import estimate_history_tokens, total_message_chars
from issuebot.agent.truncation import COMPACTED_ARG_MARKER, is_truncated, truncate_with_length


class ContextCompactor:
    """Blunt size safety valve run before every model call.

    When the history's character footprint exceeds ``max_total_chars``,
    every message except the seed and the last ``preserve_recent_count``
    is truncated: long tool results keep their first
    ``max_tool_result_chars`` chars, long assistant text and long string
    tool-call arguments keep a ``text_preview_chars`` prefix.  It knows
    nothing about review iterations.
    """

    def __init__(
        self,
        max_total_chars: int = 80_000,
        max_tool_result_chars: int = 500,
        preserve_recent_count: int = 10,
        text_preview_chars: int = 200,
    ):
        if max_total_chars <= 0:
            raise ValueError("max_total_chars must be positive")
        if max_tool_result_chars <= 0 or text_preview_chars <= 0:
            raise ValueError("Compaction caps must be positive")
        if preserve_recent_count < 0:
            raise ValueError("preserve_recent_count must not be negative")
        self.max_total_chars = max_total_chars
        self.max_tool_result_chars = max_tool_result_chars
        self.preserve_recent_count = preserve_recent_count
        self.text_preview_chars = min(text_preview_chars, max_tool_result_chars)

    def should_compact(self, history: MessageHistory) -> bool:
        """Check if the history is over the size threshold."""
        if len(history) <= self.preserve_recent_count + 1:
            return False
        return total_message_chars(history) > self.max_total_chars

    def apply(self, history: MessageHistory) -> int:
        """Compact the history if it is over the threshold. Returns count of rewritten messages."""
        if not self.should_compact(history):
            return 0

        total = total_message_chars(history)
        tokens = estimate_history_tokens(history)
        rewritten = self.compact(history, len(history) - self.preserve_recent_count)
        if rewritten:
            logger.info(
                f"Context compaction: {total} chars (~{tokens} tokens) "
                f"over {self.max_total_chars}, {rewritten} messages truncated, "
                f"now {total_message_chars(history)} chars"
            )
        return rewritten

    def compact(self, history: MessageHistory, end_index: int) -> int:
        """Truncate messages in the range [1, end_index) in place."""
        rewritten = 0
        for i in range(1, min(end_index, len(history))):
            msg = history[i]

            if isinstance(msg, ToolResult):
                new_content = truncate_with_length(
                    msg.content, self.max_tool_result_chars, self.max_tool_result_chars,
                )
                if new_content != msg.content:
                    msg.content = new_content
                    rewritten += 1

            elif isinstance(msg, (AssistantText, AssistantToolCall)):
                changed = self._truncate_text(msg)
                if isinstance(msg, AssistantToolCall):
                    for tc in msg.tool_calls:
                        changed = self._truncate_args(tc) or changed
                rewritten += changed

        return rewritten

    def _truncate_text(self, msg: AssistantText | AssistantToolCall) -> bool:
        new_content = truncate_with_length(
            msg.content, self.max_tool_result_chars, self.text_preview_chars,
        )
        if new_content == msg.content:
            return False
        msg.content = new_content
        return True

    def _truncate_args(self, tool_call: ToolCall) -> bool:
        args = tool_call.parsed_args()
        if args is None:
            # Malformed arguments stay as they are
            return False

        changed = False
        for key, value in args.items():
            if not isinstance(value, str) or len(value) <= self.max_tool_result_chars:
                continue
            if is_truncated(value):
                continue
            args[key] = value[:self.text_preview_chars] + COMPACTED_ARG_MARKER
            changed = True

        if changed and isinstance(tool_call.args, str):
            tool_call.args = json.dumps(args, ensure_ascii=False)
        return changed
