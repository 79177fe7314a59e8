"""
llmtrace: Observability for generative-AI provider calls.

Instruments chat-completion and embedding requests inside an APM agent,
producing tracing segments, token accounting and correlated LLM events
that are buffered for harvest by the host's export path.
"""

__version__ = "0.1.0"
