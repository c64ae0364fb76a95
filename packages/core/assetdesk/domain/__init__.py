"""Domain layer: models, interfaces and components."""
