"""Prompt assembly helpers."""


def render_transcript(messages: list[dict[str, str]]) -> str:
    """Render chat messages as a tagged transcript for a single user turn."""
    lines = []
    for msg in messages:
        role = msg.get("role", "unknown")
        content = msg.get("content", "")
        if isinstance(content, str):
            lines.append(f"<{role}>{content}</{role}>")
    body = "\n".join(lines)
    return f"<conversation>\n{body}\n</conversation>\n\nAnalyze this conversation. Return JSON only."
