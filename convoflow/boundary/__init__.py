"""
Boundary layer for external system integrations.

Database persistence (db) and AI provider clients (ai).
"""
