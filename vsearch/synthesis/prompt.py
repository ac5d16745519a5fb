"""Prompt construction for answer synthesis."""

from __future__ import annotations

from typing import Sequence

from vsearch.scraper.models import Source

SYSTEM_PROMPT = (
    "You are an advanced AI assistant that provides accurate, helpful, and "
    "concise answers based on the given sources.\n"
    "Follow these guidelines:\n"
    "1. Cite sources as [1], [2], etc. after each sentence that uses information "
    "from that source\n"
    "2. Be objective and factual\n"
    "3. If the sources don't contain relevant information, acknowledge the limitations\n"
    "4. Synthesize information from multiple sources when appropriate\n"
    "5. Use bullet points for lists and structured information\n"
    "6. Format your response in a clear, readable way"
)


def format_sources(sources: Sequence[Source]) -> str:
    """Render *sources* as numbered ``Source [i]`` blocks."""
    return "\n\n".join(
        f"Source [{i}]: {source.title or 'Untitled'}\n"
        f"URL: {source.url}\n"
        f"Content: {source.text}"
        for i, source in enumerate(sources, start=1)
    )


def build_answer_prompt(
    query: str,
    sources: Sequence[Source],
    fallback: bool = False,
) -> str:
    """Build the user prompt asking the model to answer *query* from *sources*.

    With ``fallback=True`` (the sources are placeholders) the model is told to
    be upfront about the thin evidence instead of citing it.
    """
    if fallback:
        instructions = (
            f'Provide a helpful answer to the query "{query}" based on the following '
            "limited information.\n"
            "Be honest about limitations in the available data. If you can't answer "
            "the query well, suggest ways the user could refine their search.\n"
            "Do not make up information that isn't in the sources."
        )
    else:
        instructions = (
            f'Provide a comprehensive answer to the query "{query}" based on the '
            "following sources.\n"
            "Be accurate, helpful, and cite sources as [1], [2], etc. after each "
            "sentence that uses information from that source."
        )
    return f"{instructions}\n\n{format_sources(sources)}"
