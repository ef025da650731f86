"""Domain layer: entities, value objects and errors. No I/O."""
