"""
AI Services

Generation oracle client and prompt templates for plan drafting.
"""

from .client import AIClient, GenerationOracle, get_ai_client
from .prompt_loader import PromptLibrary, get_prompt_library

__all__ = [
    "AIClient",
    "GenerationOracle",
    "get_ai_client",
    "PromptLibrary",
    "get_prompt_library",
]
