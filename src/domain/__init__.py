"""Domain layer: business entities, rules and services."""
