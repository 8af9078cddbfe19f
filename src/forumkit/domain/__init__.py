"""Domain layer: forum entities, permission rules, ordering, Q&A projection.

This layer depends only on stdlib, pydantic and python-slugify.
It must never import from services, infrastructure, commands, or config.
"""
