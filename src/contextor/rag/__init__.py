"""contextor retrieval — similarity search and context assembly."""

from contextor.rag.assembler import AssemblyState, ContextAssembler, QueryContext
from contextor.rag.retriever import RetrieverConfig, group_by_source_type, search

__all__ = [
    "AssemblyState",
    "ContextAssembler",
    "QueryContext",
    "RetrieverConfig",
    "group_by_source_type",
    "search",
]
