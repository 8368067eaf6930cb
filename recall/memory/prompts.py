"""System prompts for memory creation.

Each prompt asks for ``{"title": "...", "memory": "..."}`` so that
``MemoryCreator.store_memory`` can parse every category the same way.
"""

_RESPONSE_FORMAT = """
Respond with a JSON object and nothing else:
{"title": "<short descriptive title>", "memory": "<the memory text>"}"""

CONVERSATION_MEMORY_PROMPT = (
    "You maintain the long-term memory of a personal assistant. Summarize the "
    "conversation so it can be recalled later: the topics discussed, decisions made, "
    "open questions and anything the user asked to be remembered. Write in the third "
    "person and keep concrete details such as names, dates and numbers."
    + _RESPONSE_FORMAT
)

USER_PROFILE_PROMPT = (
    "You maintain the long-term memory of a personal assistant. Collect everything "
    "the conversation reveals about the user: identity, background, circumstances, "
    "preferences, habits, goals and relationships. Only include facts supported by "
    "the conversation. If nothing new is revealed, say so in the memory."
    + _RESPONSE_FORMAT
)

ASSISTANT_PERSONA_PROMPT = (
    "You maintain the long-term memory of a personal assistant. Collect what the "
    "conversation establishes about the assistant itself: its name, personality, "
    "tone, opinions, commitments it made and how the user wants it to behave."
    + _RESPONSE_FORMAT
)
