"""Iteration-aware pruning of completed review-fix cycles."""

import json

from loguru import logger

from issuebot.agent.iterations import (
    DELEGATION_TOOL,
    REVIEWER_ROLE,
    delegation_calls,
    find_iteration_boundaries,
)
from issuebot.agent.messages import AssistantToolCall, MessageHistory, ToolCall, ToolResult
from issuebot.agent.truncation import (
    CLEARED_PLACEHOLDER,
    PROMPT_TRUNCATED_MARKER,
    PRUNED_TAG,
    is_truncated,
    truncate_with_length,
)


class IterationPruner:
    """Compresses everything before the latest completed review iteration.

    Old delegation history stays as a bounded preview: task prompts are cut
    to a short prefix and task results to ``max_compressed_length`` chars.
    Results of every other tool (CI status, file listings, ...) are replaced
    with a one-line placeholder, since a later iteration supersedes them.
    The seed message and everything from the latest boundary on are never
    touched.
    """

    def __init__(
        self,
        max_compressed_length: int = 500,
        prompt_preview_chars: int = 200,
        min_completed_iterations: int = 2,
        delegation_tool: str = DELEGATION_TOOL,
        reviewer_role: str = REVIEWER_ROLE,
    ):
        if max_compressed_length <= 0 or prompt_preview_chars <= 0:
            raise ValueError("Pruning lengths must be positive")
        if min_completed_iterations < 1:
            raise ValueError("min_completed_iterations must be at least 1")
        self.max_compressed_length = max_compressed_length
        self.prompt_preview_chars = prompt_preview_chars
        self.min_completed_iterations = min_completed_iterations
        self.delegation_tool = delegation_tool
        self.reviewer_role = reviewer_role

    def apply(self, history: MessageHistory) -> int:
        """Prune old iterations if enough review cycles have completed.

        Returns:
            Count of messages rewritten.
        """
        boundaries = find_iteration_boundaries(
            history, self.delegation_tool, self.reviewer_role,
        )
        if len(boundaries) < self.min_completed_iterations:
            return 0

        latest = boundaries[-1]
        rewritten = self.prune(history, latest)
        if rewritten:
            logger.info(
                f"Iteration pruning: {len(boundaries)} completed iterations, "
                f"{rewritten} messages before index {latest} compressed"
            )
        return rewritten

    def prune(self, history: MessageHistory, latest_boundary: int) -> int:
        """Compress messages strictly before ``latest_boundary`` in place."""
        end = min(latest_boundary, len(history))

        task_call_ids: set[str] = set()
        for i in range(end):
            msg = history[i]
            if isinstance(msg, AssistantToolCall):
                for tc in delegation_calls(msg, self.delegation_tool):
                    task_call_ids.add(tc.id)

        rewritten = 0
        for i in range(1, end):
            msg = history[i]

            if isinstance(msg, AssistantToolCall):
                changed = False
                for tc in delegation_calls(msg, self.delegation_tool):
                    changed = self._truncate_prompt(tc) or changed
                rewritten += changed

            elif isinstance(msg, ToolResult):
                if msg.correlation_id in task_call_ids:
                    new_content = truncate_with_length(
                        msg.content,
                        self.max_compressed_length,
                        self.max_compressed_length,
                        tag=PRUNED_TAG,
                    )
                elif msg.content:
                    new_content = CLEARED_PLACEHOLDER
                else:
                    continue
                if new_content != msg.content:
                    msg.content = new_content
                    rewritten += 1

        return rewritten

    def _truncate_prompt(self, tool_call: ToolCall) -> bool:
        args = tool_call.parsed_args()
        if args is None:
            return False
        prompt = args.get("prompt")
        if not isinstance(prompt, str) or len(prompt) <= self.prompt_preview_chars:
            return False
        if is_truncated(prompt):
            return False

        args["prompt"] = prompt[:self.prompt_preview_chars] + PROMPT_TRUNCATED_MARKER
        # A JSON-string encoding was parsed into a copy; write it back as a string.
        if isinstance(tool_call.args, str):
            tool_call.args = json.dumps(args, ensure_ascii=False)
        return True
