"""Test the FastAPI application wiring."""

import logging

from fastapi.testclient import TestClient

from app import app
from src.logger_config import get_logger


class TestApp:
    """Test cases for the application entry point."""

    def test_healthcheck(self) -> None:
        """Test that the root route reports the API as up."""
        client = TestClient(app)

        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_search_routes_are_mounted(self) -> None:
        """Test that both search endpoints answer through the app."""
        client = TestClient(app)

        get_response = client.get("/search")
        post_response = client.post("/search", json={})

        assert get_response.status_code == 400
        assert post_response.status_code == 422

    def test_get_logger_attaches_single_handler(self) -> None:
        """Test that repeated calls do not duplicate handlers."""
        logger = get_logger("price_search.test_app", level=logging.DEBUG)
        same = get_logger("price_search.test_app", level=logging.DEBUG)

        assert same is logger
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
