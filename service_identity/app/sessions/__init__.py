"""
Stateless session tokens.
"""

from .authority import SessionAuthority, SessionClaims

__all__ = ["SessionAuthority", "SessionClaims"]
