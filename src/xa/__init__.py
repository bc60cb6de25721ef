"""
xa - Execute Anything via LLM.

Process arbitrary text through prompt templates sent to an
OpenAI-compatible chat completions API.

Features:
- commands: named prompt templates with typed arguments (fuzzy matched)
- ask: interactive conversation with in-memory history
- add/search: secret notes tagged and located by the LLM
- output: Markdown rendering and clipboard copy

Requires: an OpenAI-compatible API key (configure with: xa --set openai)
"""

__version__ = "0.1.0"
