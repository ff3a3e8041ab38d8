"""Domain layer: game state, effects, track, jail, shop. No UI or LLM imports."""
