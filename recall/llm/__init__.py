"""Chat-completion client and helpers for structured LLM responses."""
