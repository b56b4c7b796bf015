"""Domain layer: model, ports and relationship services."""
