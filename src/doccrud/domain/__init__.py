"""Domain layer: entities, services and the error taxonomy."""
