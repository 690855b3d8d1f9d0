"""Approximate size accounting for the conversation history."""

from issuebot.agent.messages import AssistantToolCall, Message, ToolCall

CHARS_PER_TOKEN = 4  # Cross-model estimate (EN text/code/JSON)


def estimate_tokens(text: str) -> int:
    """Estimate token count from character count."""
    return len(text) // CHARS_PER_TOKEN


def tool_call_chars(tool_call: ToolCall) -> int:
    """Size of a tool call's arguments in their serialized form."""
    return len(tool_call.serialized_args())


def message_chars(msg: Message) -> int:
    """Character footprint of one message: text plus serialized tool-call args."""
    total = len(msg.content)
    if isinstance(msg, AssistantToolCall):
        for tc in msg.tool_calls:
            total += tool_call_chars(tc)
    return total


def total_message_chars(messages) -> int:
    """Character footprint of a whole history."""
    return sum(message_chars(m) for m in messages)


def estimate_history_tokens(messages) -> int:
    """Estimate total tokens for a history, with per-message overhead."""
    total = 0
    for msg in messages:
        total += 4  # Per-message overhead (role, separators)
        total += message_chars(msg) // CHARS_PER_TOKEN
    return total
