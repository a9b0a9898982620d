"""Price search endpoints.

Validate query parameters, call the search service and expose its
aggregated response as JSON.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from configs import settings
from src.models.search_models import (
    ErrorResponseModel,
    SearchRequestModel,
    SearchResponseModel,
)
from src.services.price_search.models import SearchConfig, SearchFilters
from src.services.price_search.registry import build_search_service
from src.services.price_search.service import SearchService

logger = logging.getLogger("price_search.api")

MAX_QUERY_LENGTH = 100
CACHE_CONTROL = "public, max-age=300"

search_router = APIRouter(prefix="/search", tags=["Search"])


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    """FastAPI dependency returning the process-wide search service."""
    return build_search_service(settings)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponseModel(error=message).model_dump(exclude_none=True),
    )


def _price_bounds_error(
    min_price: Optional[float], max_price: Optional[float]
) -> Optional[str]:
    if min_price is not None and min_price < 0:
        return "minPrice deve ser maior ou igual a 0"
    if max_price is not None and max_price < 0:
        return "maxPrice deve ser maior ou igual a 0"
    if min_price is not None and max_price is not None and min_price > max_price:
        return "minPrice não pode ser maior que maxPrice"
    return None


def _internal_error(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponseModel(
            error="Erro interno do servidor", message=str(exc) or "Erro desconhecido"
        ).model_dump(),
    )


@search_router.get(
    "",
    responses={
        200: {"model": SearchResponseModel, "description": "Successful Response"},
        400: {"model": ErrorResponseModel, "description": "Invalid parameters"},
        500: {"model": ErrorResponseModel, "description": "Search failure"},
    },
)
def search_prices(
    q: Optional[str] = Query(default=None, description="Produto a pesquisar."),
    stores: Optional[str] = Query(default=None, description="Lojas separadas por vírgula."),
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    max_results: Optional[int] = Query(default=None, alias="maxResults", ge=1),
    timeout: Optional[int] = Query(default=None, ge=1),
    service: SearchService = Depends(get_search_service),
) -> JSONResponse:
    """Search every enabled store and return offers sorted by price."""
    if not q or not q.strip():
        return _bad_request('Parâmetro "q" (query) é obrigatório')
    if len(q) > MAX_QUERY_LENGTH:
        return _bad_request(f"Query muito longa (máximo {MAX_QUERY_LENGTH} caracteres)")
    bounds_error = _price_bounds_error(min_price, max_price)
    if bounds_error:
        return _bad_request(bounds_error)

    store_list = tuple(s.strip() for s in (stores or "").split(",") if s.strip())
    filters = SearchFilters(stores=store_list, min_price=min_price, max_price=max_price)
    config = SearchConfig(
        query=q.strip(),
        max_results=max_results,
        timeout=timeout or settings.SEARCH_TIMEOUT_MS,
    )

    try:
        response = service.search(config, None if filters.is_empty() else filters)
    except Exception as exc:
        logger.error("Erro na API de busca: %s", exc)
        return _internal_error(exc)

    payload = SearchResponseModel.from_domain(response)
    return JSONResponse(
        content=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers={"Cache-Control": CACHE_CONTROL},
    )


@search_router.post(
    "",
    responses={
        200: {"model": SearchResponseModel, "description": "Successful Response"},
        400: {"model": ErrorResponseModel, "description": "Invalid body"},
        500: {"model": ErrorResponseModel, "description": "Search failure"},
    },
)
def search_prices_post(
    body: SearchRequestModel,
    service: SearchService = Depends(get_search_service),
) -> JSONResponse:
    """Same search as the GET endpoint, with filters and options in the body."""
    query = body.query.strip()
    if not query:
        return _bad_request('Campo "query" é obrigatório e deve ser uma string não vazia')
    if len(query) > MAX_QUERY_LENGTH:
        return _bad_request(f"Query muito longa (máximo {MAX_QUERY_LENGTH} caracteres)")

    if body.filters:
        bounds_error = _price_bounds_error(body.filters.min_price, body.filters.max_price)
        if bounds_error:
            return _bad_request(bounds_error)
    filters = body.filters.to_domain() if body.filters else None

    options = body.config
    config = SearchConfig(
        query=query,
        max_results=options.max_results if options else None,
        timeout=(options.timeout if options else None) or settings.SEARCH_TIMEOUT_MS,
    )

    try:
        response = service.search(config, filters)
    except Exception as exc:
        logger.error("Erro na API POST de busca: %s", exc)
        return _internal_error(exc)

    payload = SearchResponseModel.from_domain(response)
    return JSONResponse(content=payload.model_dump(mode="json", by_alias=True, exclude_none=True))
