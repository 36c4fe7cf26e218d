"""
client — Session handling for API consumers.

Provides:
  • ``Credentials`` holder
  • ``AuthClient`` (httpx) for register / login / refresh / logout
  • ``SessionGuard`` periodic expiry check and refresh
"""
