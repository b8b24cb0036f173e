"""Agent core: tool-calling loop, prompt context, parser and tools."""
