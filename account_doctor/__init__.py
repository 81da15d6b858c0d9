"""Instagram account health audits: rule-based scoring plus optional LLM diagnosis."""

__version__ = "0.1.0"
