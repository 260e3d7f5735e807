"""Domain layer: models, contracts and selection services."""
