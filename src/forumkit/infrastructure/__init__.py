"""Infrastructure layer: SQLite store, repositories, background runner.

This layer depends on stdlib, SQLAlchemy and the domain models it maps
rows into. It must never import from services, commands, or output.
"""
