"""
Web presentation layer for the tool gateway.

Architectural Intent:
- REST API for listing tools and executing OpenAI-style tool calls
- Uses Python stdlib only (http.server + asyncio)
"""
