"""LLM access for the learning path advisor."""
