"""QueryExtractor — asks the model which past information would help right now."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from recall.errors import ParseError
from recall.llm.parsing import parse_json_object
from recall.query.models import Query

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from recall.llm.client import CompletionFn
    from recall.memory.models import ChatMessage

logger = logging.getLogger(__name__)

MAX_QUERIES = 7

_PROMPT_TEMPLATE = """\
You are a query extraction assistant. Analyze the conversation and extract \
search queries that would retrieve helpful information from long-term memory.

Available categories:
{categories}

Rules:
1. Only generate a query when recalling that information would genuinely help.
2. Format each query as "category: search query text", using a category name from the list.
3. Generate between 0 and 5 queries.
4. Respond with a JSON object and nothing else:

{{"queries": ["user_profile: user's programming language preferences", \
"conversation: previous discussions about databases"]}}
"""


def build_query_prompt(category_descriptions: Mapping[str, str]) -> str:
    """Build the system prompt listing every category with its description."""
    categories = "\n".join(
        f"- {category}: {description}" for category, description in category_descriptions.items()
    )
    return _PROMPT_TEMPLATE.format(categories=categories)


def parse_queries(text: str) -> list[Query]:
    """Parse ``{"queries": [str, ...]}`` into typed queries.

    Raises ``ParseError`` when the response does not have that shape.
    """
    data = parse_json_object(text)
    raw_queries = data.get("queries")
    if not isinstance(raw_queries, list) or not all(isinstance(q, str) for q in raw_queries):
        msg = "Expected 'queries' to be a list of strings"
        raise ParseError(msg)

    queries = [Query.parse(q) for q in raw_queries if q.strip()]
    if len(queries) > MAX_QUERIES:
        logger.info("Model returned %d queries, keeping %d", len(queries), MAX_QUERIES)
        queries = queries[:MAX_QUERIES]
    return queries


class QueryExtractor:
    """Turns recent conversation turns into categorized search queries.

    Args:
        complete: Completion callable ``(system_prompt, messages) -> text``.
    """

    def __init__(self, complete: CompletionFn) -> None:
        self._complete = complete

    async def extract_queries(
        self,
        messages: Sequence[ChatMessage],
        category_descriptions: Mapping[str, str],
    ) -> list[Query]:
        """Return 0 or more queries.

        Raises ``ParseError`` on a malformed response; completion failures
        propagate unchanged. The caller decides whether to retry.
        """
        if not messages:
            return []
        system_prompt = build_query_prompt(category_descriptions)
        response = await self._complete(system_prompt, [m.to_llm_message() for m in messages])
        queries = parse_queries(response)
        logger.info("Extracted %d quer%s", len(queries), "y" if len(queries) == 1 else "ies")
        return queries
