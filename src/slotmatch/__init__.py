"""Meeting scheduling backend with LLM-ranked matching."""

__version__ = "0.1.0"
