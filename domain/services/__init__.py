"""
Domain services containing pure business logic.
"""

from domain.services import lane_assignment, scoring_service

__all__ = ["lane_assignment", "scoring_service"]
