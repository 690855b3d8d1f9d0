"""Detection of completed review-fix cycles in the conversation history."""

from issuebot.agent.messages import AssistantToolCall, Message, ToolCall, ToolResult

DELEGATION_TOOL = "task"
REVIEWER_ROLE = "reviewer"
ROLE_ARG = "subagent_type"


def delegation_calls(msg: AssistantToolCall, delegation_tool: str = DELEGATION_TOOL) -> list[ToolCall]:
    """Return the delegation (subagent) calls on an assistant message."""
    return [tc for tc in msg.tool_calls if tc.name == delegation_tool]


def delegation_role(tool_call: ToolCall) -> str | None:
    """Extract the target subagent role from a delegation call's args."""
    args = tool_call.parsed_args()
    if args is None:
        return None
    role = args.get(ROLE_ARG)
    return role if isinstance(role, str) else None


def _has_result_after(messages: list[Message], start: int, call_id: str) -> bool:
    for msg in messages[start:]:
        if isinstance(msg, ToolResult) and msg.correlation_id == call_id:
            return True
    return False


def find_iteration_boundaries(
    messages,
    delegation_tool: str = DELEGATION_TOOL,
    reviewer_role: str = REVIEWER_ROLE,
) -> list[int]:
    """Find completed review iterations in the history.

    A completed iteration is an assistant message that delegates to the
    reviewer, followed anywhere later by the tool result for that call.
    Only the first reviewer delegation on each message counts.

    Returns:
        Ascending indices of the assistant messages that triggered each
        completed reviewer delegation.
    """
    messages = list(messages)
    boundaries: list[int] = []

    for i, msg in enumerate(messages):
        if not isinstance(msg, AssistantToolCall):
            continue

        reviewer_call = next(
            (tc for tc in delegation_calls(msg, delegation_tool)
             if delegation_role(tc) == reviewer_role),
            None,
        )
        if reviewer_call is None:
            continue

        if _has_result_after(messages, i + 1, reviewer_call.id):
            boundaries.append(i)

    return boundaries
