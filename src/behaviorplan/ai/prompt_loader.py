"""
Prompt Library Loader

Loads plan prompt templates from JSON into memory.

Architecture:
- Load once at startup (bundled default or settings.PROMPT_LIBRARY_PATH)
- Keep in memory as singleton
- Fast O(1) lookup by prompt_id
- Templates use {{placeholder}} substitution
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

PLAN_GENERATION = "PLAN-GEN-001"
SECTION_REVISION = "PLAN-REV-001"
COHERENCE_CHECK = "PLAN-COH-001"


class PromptLibrary:
    """In-memory prompt library loaded from JSON."""

    def __init__(self, prompt_library_path: Path | None = None):
        """Initialize prompt library.

        Args:
            prompt_library_path: Path to prompt library JSON.
                                 Defaults to settings.prompt_library_path
        """
        if prompt_library_path is None:
            from behaviorplan.config import settings

            prompt_library_path = settings.prompt_library_path

        self.path = prompt_library_path
        self.prompts: dict[str, dict[str, Any]] = {}
        self.metadata: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load prompts from JSON file."""
        if not self.path.exists():
            raise FileNotFoundError(f"Prompt library not found: {self.path}")

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        self.metadata = {
            "version": data.get("version", "unknown"),
            "last_updated": data.get("last_updated"),
            "total_prompts": len(data.get("prompts", [])),
        }

        for prompt in data.get("prompts", []):
            self.prompts[prompt["prompt_id"]] = prompt

    def get_prompt(self, prompt_id: str) -> dict[str, Any]:
        """Get prompt by ID.

        Raises:
            KeyError: If prompt_id not found
        """
        if prompt_id not in self.prompts:
            available = ", ".join(sorted(self.prompts.keys()))
            raise KeyError(
                f"Prompt '{prompt_id}' not found in library.\nAvailable prompts: {available}"
            )

        return self.prompts[prompt_id]

    def render(self, prompt_id: str, context: Mapping[str, object]) -> str:
        """Fill a prompt's user template.

        Args:
            prompt_id: Prompt identifier
            context: Placeholder values; missing keys render as "Not specified"

        Returns:
            Rendered prompt text
        """
        template = self.get_prompt(prompt_id)["user_template"]

        def substitute(match: re.Match[str]) -> str:
            value = context.get(match.group(1))
            if value is None or value == "":
                return "Not specified"
            return str(value)

        return _PLACEHOLDER.sub(substitute, template)

    def __len__(self) -> int:
        """Return number of prompts in library."""
        return len(self.prompts)

    def __contains__(self, prompt_id: str) -> bool:
        """Check if prompt exists."""
        return prompt_id in self.prompts

    def __repr__(self) -> str:
        """String representation."""
        return f"PromptLibrary(version={self.metadata['version']}, prompts={len(self.prompts)})"


# Global singleton instance
_prompt_library: PromptLibrary | None = None


def get_prompt_library(force_reload: bool = False) -> PromptLibrary:
    """Get singleton prompt library instance.

    Args:
        force_reload: Force reload from disk (default: False)

    Returns:
        PromptLibrary instance
    """
    global _prompt_library

    if _prompt_library is None or force_reload:
        _prompt_library = PromptLibrary()

    return _prompt_library
