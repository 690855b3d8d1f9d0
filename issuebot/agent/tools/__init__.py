"""Agent tools and tool wrappers."""
