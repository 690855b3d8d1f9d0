"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class CompactionConfig(BaseModel):
    """Size-triggered context compaction."""
    enabled: bool = True
    max_total_chars: int = 80_000  # History footprint that triggers compaction
    max_tool_result_chars: int = 500
    preserve_recent_count: int = 10  # Most recent messages left untouched
    text_preview_chars: int = 200  # Prefix kept from long assistant text / tool args


class PruningConfig(BaseModel):
    """Iteration-aware pruning of completed review cycles."""
    enabled: bool = True
    max_compressed_length: int = 500  # Chars kept from old subagent results
    prompt_preview_chars: int = 200  # Chars kept from old subagent prompts
    min_completed_iterations: int = 2
    delegation_tool: str = "task"
    reviewer_role: str = "reviewer"


class CacheConfig(BaseModel):
    """Tool result cache."""
    enabled: bool = True
    snapshot_prefixes: list[str] = Field(default_factory=lambda: ["diff:"])


class MemoryConfig(BaseModel):
    """Agent memory management."""
    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    pruning: PruningConfig = Field(default_factory=PruningConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


class ToolsConfig(BaseModel):
    """Tool wrapping configuration."""
    output_cap: int = 10_000  # Max chars of a single tool result
    max_tool_calls: int = 500  # Circuit breaker limit per run


class Config(BaseSettings):
    """Root configuration for issuebot."""
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    class Config:
        env_prefix = "ISSUEBOT_"
        env_nested_delimiter = "__"
