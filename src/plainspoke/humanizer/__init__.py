"""Prompt assembly, generation client, and output sanitizing."""

from plainspoke.humanizer.client import ChatCompletionsGenerator
from plainspoke.humanizer.prompts import SIMPLE_MODES, PromptComposer
from plainspoke.humanizer.sanitize import sanitize

__all__ = ["SIMPLE_MODES", "ChatCompletionsGenerator", "PromptComposer", "sanitize"]
