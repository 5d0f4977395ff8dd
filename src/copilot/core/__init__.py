"""Per-turn copilot pipeline: guards, memory, context, generation, scoring."""
