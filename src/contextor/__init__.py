"""contextor — personal RAG pipeline for project context documents."""

__version__ = "0.1.0"
