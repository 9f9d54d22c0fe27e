"""LLM-backed helpers used by the hazard pipeline."""
