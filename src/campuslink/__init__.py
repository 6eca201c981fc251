"""
CampusLink API - identity verification for the campus network.
"""

__version__ = "0.1.0"
