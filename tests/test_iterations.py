"""Tests for review iteration boundary detection."""

import json

from issuebot.agent.iterations import delegation_role, find_iteration_boundaries
from issuebot.agent.messages import (
    AssistantText,
    AssistantToolCall,
    MessageHistory,
    ToolCall,
    ToolResult,
)


def delegate(call_id, role, as_json=False, prompt="do it"):
    args = {"subagent_type": role, "prompt": prompt}
    return ToolCall(id=call_id, name="task", args=json.dumps(args) if as_json else args)


def build(*messages):
    history = MessageHistory("Resolve issue #42")
    for msg in messages:
        history.append(msg)
    return history


class TestDelegationRole:
    def test_dict_args(self):
        assert delegation_role(delegate("c", "reviewer")) == "reviewer"

    def test_json_string_args(self):
        assert delegation_role(delegate("c", "coder", as_json=True)) == "coder"

    def test_malformed_args(self):
        assert delegation_role(ToolCall(id="c", name="task", args="{oops")) is None

    def test_non_string_role(self):
        assert delegation_role(ToolCall(id="c", name="task", args={"subagent_type": 3})) is None


class TestFindIterationBoundaries:
    def test_empty_history(self):
        assert find_iteration_boundaries(MessageHistory("seed")) == []

    def test_single_completed_review(self):
        history = build(
            AssistantToolCall([delegate("r1", "reviewer")]),
            ToolResult("r1", "task", "LGTM"),
        )
        assert find_iteration_boundaries(history) == [1]

    def test_pending_review_not_counted(self):
        history = build(AssistantToolCall([delegate("r1", "reviewer")]))
        assert find_iteration_boundaries(history) == []

    def test_non_reviewer_delegation_ignored(self):
        history = build(
            AssistantToolCall([delegate("c1", "coder")]),
            ToolResult("c1", "task", "done"),
        )
        assert find_iteration_boundaries(history) == []

    def test_non_task_tool_with_reviewer_arg_ignored(self):
        call = ToolCall(id="x", name="read_file", args={"subagent_type": "reviewer"})
        history = build(AssistantToolCall([call]), ToolResult("x", "read_file", "..."))
        assert find_iteration_boundaries(history) == []

    def test_json_string_args_accepted(self):
        history = build(
            AssistantToolCall([delegate("r1", "reviewer", as_json=True)]),
            ToolResult("r1", "task", "needs changes"),
        )
        assert find_iteration_boundaries(history) == [1]

    def test_result_must_come_after_call(self):
        history = build(
            ToolResult("r1", "task", "stray result"),
            AssistantToolCall([delegate("r1", "reviewer")]),
        )
        assert find_iteration_boundaries(history) == []

    def test_only_first_reviewer_call_per_message_counts(self):
        # Second reviewer call completes, first does not: no boundary
        history = build(
            AssistantToolCall([delegate("r1", "reviewer"), delegate("r2", "reviewer")]),
            ToolResult("r2", "task", "done"),
        )
        assert find_iteration_boundaries(history) == []

    def test_k_cycles_yield_k_ascending_boundaries(self):
        messages = []
        for k in range(3):
            messages += [
                AssistantToolCall([delegate(f"c{k}", "coder")]),
                ToolResult(f"c{k}", "task", "implemented"),
                AssistantToolCall([delegate(f"r{k}", "reviewer")]),
                ToolResult(f"r{k}", "task", "review"),
            ]
        history = build(*messages)
        boundaries = find_iteration_boundaries(history)
        assert boundaries == [3, 7, 11]
        for idx in boundaries:
            assert isinstance(history[idx], AssistantToolCall)

    def test_interleaved_delegations_still_form_boundary(self):
        # A parallel coder delegation between the reviewer call and its
        # result does not prevent the boundary from being recognised.
        history = build(
            AssistantToolCall([delegate("r1", "reviewer")]),
            AssistantToolCall([delegate("c1", "coder")]),
            ToolResult("c1", "task", "coder done"),
            ToolResult("r1", "task", "review done"),
        )
        assert find_iteration_boundaries(history) == [1]

    def test_reviewer_calls_at_1_and_10_are_boundaries(self):
        history = build(
            AssistantToolCall([delegate("r1", "reviewer")]),  # 1
            AssistantText("waiting"),  # 2
            ToolResult("r1", "task", "needs changes"),  # 3
            *[AssistantText(f"step {i}") for i in range(4, 10)],  # 4..9
            AssistantToolCall([delegate("r2", "reviewer")]),  # 10
            AssistantText("waiting"),  # 11
            ToolResult("r2", "task", "approved"),  # 12
        )
        assert find_iteration_boundaries(history) == [1, 10]

    def test_custom_tool_and_role(self):
        call = ToolCall(id="q", name="delegate", args={"subagent_type": "qa"})
        history = build(AssistantToolCall([call]), ToolResult("q", "delegate", "ok"))
        assert find_iteration_boundaries(history, delegation_tool="delegate", reviewer_role="qa") == [1]
