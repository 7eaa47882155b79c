"""
Authentication collaborator used as a gate by the HTTP layer.
"""
from .provider import AuthProvider, InMemoryAuthProvider, User

__all__ = ['AuthProvider', 'InMemoryAuthProvider', 'User']
