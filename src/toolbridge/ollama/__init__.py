"""Ollama client wrapper used as the completion endpoint.

All Ollama interactions are async and use streaming.
"""

from toolbridge.ollama.client import OllamaClient

__all__ = ["OllamaClient"]
