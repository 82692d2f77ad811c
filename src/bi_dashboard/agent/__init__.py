"""Data assistant: tool registry, executor and the tool-calling loop."""
