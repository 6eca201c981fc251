"""
Principals Module

Accounts that move through verification, and the access policy that turns
their state into feature capabilities.

API Endpoints:
- POST /principals/me - Complete signup
- GET /principals/me - Get own account
- GET /principals/me/access - Capabilities computed from current state
"""

from .router import router

__all__ = ["router"]
