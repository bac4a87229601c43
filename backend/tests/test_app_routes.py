"""Regression tests for application route registration."""
from fastapi.routing import APIRoute

from app.main import app


def test_plan_routes_registered_once() -> None:
    """Every dream route is mounted exactly once."""
    expected = {
        ("POST", "/dreams"),
        ("GET", "/dreams/active"),
        ("GET", "/dreams/{dream_id}/goals"),
        ("PATCH", "/dreams/{dream_id}/current-day"),
        ("GET", "/dreams/{dream_id}/discovery"),
        ("POST", "/dreams/{dream_id}/generate-plan"),
        ("POST", "/dreams/{dream_id}/generate-discovery-plan"),
    }
    registered = [
        (method, route.path)
        for route in app.routes
        if isinstance(route, APIRoute)
        for method in route.methods
    ]

    for key in expected:
        assert registered.count(key) == 1, key
