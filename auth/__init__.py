"""
auth — Credential and session management.

Provides:
  • Salted SHA-256 password hashing
  • HS256 bearer token issue / verify
  • Server-side login sessions with refresh-token rotation
  • ``CredentialService`` (register / login / logout / refresh / password reset)
  • Auth API routes and the ``get_current_user`` FastAPI dependency
"""
