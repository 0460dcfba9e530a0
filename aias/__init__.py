"""AIAS Executor: a tool-execution gateway for OpenAI-style function calling."""

__version__ = "1.0.0"
