"""FastAPI application."""

import argparse
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from configs import settings
from src.controllers.search_controllers import search_router
from src.logger_config import get_logger

logger = get_logger("price_search")

logger.info("Starting FastAPI application...")
app = FastAPI(
    title="Price Aggregator API",
    root_path=settings.ROOT_PATH_BACKEND,
    description="Busca de preços agregada entre lojas online",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.include_router(search_router)


@app.get("/", response_description="Api healthcheck")  # type: ignore[misc]
async def index() -> Dict[str, str]:
    """Define a route for handling HTTP GET requests to the root URL ("/")."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", required=True, help="Application host.")
    parser.add_argument("--port", required=True, help="Application port.")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development purposes.",
    )
    args = parser.parse_args()

    uvicorn.run("app:app", host=args.host, port=int(args.port), reload=args.reload)
