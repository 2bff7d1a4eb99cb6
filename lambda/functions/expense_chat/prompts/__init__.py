"""
Expense Assistant Prompts
=========================

System prompt for the chat assistant.
"""

from .assistant_prompt import build_system_prompt

__all__ = ["build_system_prompt"]
