"""Regression tests for application route registration."""
from fastapi.routing import APIRoute

from app.main import app


def _routes(path: str, method: str) -> list[APIRoute]:
    return [
        route
        for route in app.routes
        if isinstance(route, APIRoute) and route.path == path and method in route.methods
    ]


def test_completion_routes_registered_once() -> None:
    """Ensure completion endpoints are not mounted multiple times."""
    assert len(_routes("/tasks/{task_id}/complete", "POST")) == 1
    assert len(_routes("/habits/{habit_id}/tick", "POST")) == 1
    assert len(_routes("/tasks/reset", "POST")) == 1
