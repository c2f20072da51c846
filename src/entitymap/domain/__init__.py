"""Domain layer — entity model, type descriptors, coercion rules, errors.

This layer depends only on stdlib and pydantic.
It must never import from mapping, services, infrastructure, commands, or config.
"""
