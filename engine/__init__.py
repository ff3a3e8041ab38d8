"""Engine layer: reducer, persistence, session controller."""
