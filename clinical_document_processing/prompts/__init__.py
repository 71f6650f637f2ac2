"""
Prompts Layer - Prompt Templates for Provider Calls

Submodules:
    prompt_builder.py → PromptBuilder and templates

Author: Shubham Singh
Date: January 2026
"""

from clinical_document_processing.prompts.prompt_builder import PromptBuilder

__all__ = ["PromptBuilder"]
