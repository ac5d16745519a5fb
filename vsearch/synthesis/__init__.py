"""Answer synthesis and related-query generation over retrieved sources."""

from vsearch.synthesis.answer import (
    SynthesisError,
    answer_metadata,
    describe_synthesis_error,
    synthesize,
    synthesize_stream,
)
from vsearch.synthesis.prompt import SYSTEM_PROMPT, build_answer_prompt
from vsearch.synthesis.queries import gather_expanded_sources, generate_related_queries

__all__ = [
    "SYSTEM_PROMPT",
    "SynthesisError",
    "answer_metadata",
    "build_answer_prompt",
    "describe_synthesis_error",
    "gather_expanded_sources",
    "generate_related_queries",
    "synthesize",
    "synthesize_stream",
]
