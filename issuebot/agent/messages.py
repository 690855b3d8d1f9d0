"""Typed model of the agent's append-only conversation log."""

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from loguru import logger


@dataclass
class ToolCall:
    """A single tool invocation requested by the model.

    ``args`` is a ``dict`` once ingested.  It stays a ``str`` only when the
    model produced something that is not a JSON object.
    """
    id: str
    name: str
    args: dict[str, Any] | str = field(default_factory=dict)

    def parsed_args(self) -> dict[str, Any] | None:
        """Return args as a dict, parsing a JSON string if needed."""
        if isinstance(self.args, dict):
            return self.args
        return parse_arguments(self.args)

    def serialized_args(self) -> str:
        if isinstance(self.args, str):
            return self.args
        return json.dumps(self.args, ensure_ascii=False)


@dataclass(frozen=True)
class SeedMessage:
    """First message of a run, carrying the original task. Never modified."""
    content: str


@dataclass
class UserText:
    content: str


@dataclass
class AssistantText:
    content: str


@dataclass
class AssistantToolCall:
    tool_calls: list[ToolCall]
    content: str = ""


@dataclass
class ToolResult:
    correlation_id: str
    producer_name: str
    content: str


Message = Union[SeedMessage, UserText, AssistantText, AssistantToolCall, ToolResult]


def parse_arguments(raw: Any) -> dict[str, Any] | None:
    """Parse tool-call arguments into a dict. Returns None if not possible."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _normalize_args(raw: Any) -> dict[str, Any] | str:
    if raw is None or raw == "":
        return {}
    parsed = parse_arguments(raw)
    if parsed is not None:
        return parsed
    logger.warning(f"Leaving malformed tool-call arguments unparsed: {str(raw)[:80]!r}")
    return raw if isinstance(raw, str) else str(raw)


def _text_content(content: Any) -> str:
    """Flatten OpenAI-style content (string or list of blocks) to text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "\n".join(parts)
    return str(content)


def message_from_dict(msg: dict[str, Any], is_first: bool = False) -> Message:
    """Convert one OpenAI-style message dict to a typed message."""
    role = msg.get("role")
    content = _text_content(msg.get("content"))

    if is_first:
        return SeedMessage(content=content)

    if role == "assistant":
        raw_calls = msg.get("tool_calls") or []
        if not raw_calls:
            return AssistantText(content=content)
        calls = []
        for tc in raw_calls:
            fn = tc.get("function", {})
            calls.append(ToolCall(
                id=str(tc.get("id", "")),
                name=fn.get("name", tc.get("name", "")),
                args=_normalize_args(fn.get("arguments", tc.get("args"))),
            ))
        return AssistantToolCall(tool_calls=calls, content=content)

    if role == "tool":
        return ToolResult(
            correlation_id=str(msg.get("tool_call_id", "")),
            producer_name=msg.get("name", ""),
            content=content,
        )

    return UserText(content=content)


def message_to_dict(msg: Message) -> dict[str, Any]:
    """Convert a typed message back to the OpenAI-style dict format."""
    if isinstance(msg, (SeedMessage, UserText)):
        return {"role": "user", "content": msg.content}
    if isinstance(msg, AssistantText):
        return {"role": "assistant", "content": msg.content}
    if isinstance(msg, AssistantToolCall):
        return {
            "role": "assistant",
            "content": msg.content,
            "tool_calls": [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.serialized_args()},
                }
                for tc in msg.tool_calls
            ],
        }
    if isinstance(msg, ToolResult):
        return {
            "role": "tool",
            "tool_call_id": msg.correlation_id,
            "name": msg.producer_name,
            "content": msg.content,
        }
    raise TypeError(f"Unknown message type: {type(msg).__name__}")


class MessageHistory:
    """
    The conversation log of one agent run.

    Created with the seed at run start and grows by ``append`` only.
    Compaction and pruning rewrite message content in place; order and
    length never change through them.
    """

    def __init__(self, seed: SeedMessage | str):
        if isinstance(seed, str):
            seed = SeedMessage(content=seed)
        self._messages: list[Message] = [seed]

    @classmethod
    def from_dicts(cls, messages: list[dict[str, Any]]) -> "MessageHistory":
        """Build a history from OpenAI-style dicts. The first one becomes the seed."""
        if not messages:
            raise ValueError("A history needs at least the seed message")
        history = cls(message_from_dict(messages[0], is_first=True))
        for msg in messages[1:]:
            history.append(message_from_dict(msg))
        return history

    def to_dicts(self) -> list[dict[str, Any]]:
        return [message_to_dict(m) for m in self._messages]

    @property
    def seed(self) -> SeedMessage:
        return self._messages[0]

    def append(self, message: Message) -> None:
        if isinstance(message, SeedMessage):
            raise ValueError("Only the first message of a run can be the seed")
        self._messages.append(message)

    def add_text(self, content: str) -> None:
        self.append(AssistantText(content=content))

    def add_tool_calls(self, tool_calls: list[ToolCall], content: str = "") -> None:
        self.append(AssistantToolCall(tool_calls=tool_calls, content=content))

    def add_tool_result(self, correlation_id: str, producer_name: str, content: str) -> None:
        self.append(ToolResult(
            correlation_id=correlation_id, producer_name=producer_name, content=content,
        ))

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)
