# voicebridge/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- errors: Typed error taxonomy shared by services and routers
- jobs: Fire-and-forget background task registry
- rate_limit: Per-client sliding window request limiting
"""
