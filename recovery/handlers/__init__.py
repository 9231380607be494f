"""
Handlers package coordinating adaptation services for a recovery plan.
"""
from .adaptation import generate_plan_recommendations
from .decisions import handle_decision

__all__ = ["generate_plan_recommendations", "handle_decision"]
