"""
Web application package for Tal Chess.

Provides a FastAPI JSON API for playing against a persona tier: a stateless
move endpoint and in-memory game sessions with a running chess clock.
Serve it with: uvicorn web.app:app
"""
