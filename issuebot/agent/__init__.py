"""Agent core: conversation history, context bounding and tool result caching."""
