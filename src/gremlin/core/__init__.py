"""
Core Package

Data model (spec, sessions, routes) and JSON persistence.
"""

from .routes import Route, RouteSource
from .storage import load_routes, load_sessions, load_spec, save_spec

__all__ = [
    'Route', 'RouteSource',
    'load_routes', 'load_sessions', 'load_spec', 'save_spec',
]
