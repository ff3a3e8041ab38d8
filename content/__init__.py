"""Content layer: prompts, parsing, schemas, providers and the event generator."""
