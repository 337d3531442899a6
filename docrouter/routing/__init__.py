"""Routing decision engine and its tiers"""

from docrouter.routing.engine import RoutingEngine

__all__ = ["RoutingEngine"]
