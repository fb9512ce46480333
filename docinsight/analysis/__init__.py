"""Document analysis: providers, prompts and the fallback orchestrator."""
