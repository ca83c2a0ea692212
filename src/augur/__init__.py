"""Augur - advice orchestration across interchangeable LLM providers."""

__version__ = "0.4.0"
