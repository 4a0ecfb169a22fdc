"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Logging setup
- Fire-and-forget background tasks
"""
