"""Domain layer: entities, enums, storage contracts and exceptions."""
