"""API models for the price search endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.services.price_search.models import SearchFilters, SearchResponse


class FiltersModel(BaseModel):
    """Optional filters accepted by the search endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    stores: Optional[List[str]] = Field(
        default=None, description="Lojas permitidas (vazio = todas)."
    )
    min_price: Optional[float] = Field(
        default=None, alias="minPrice", description="Preço mínimo inclusivo."
    )
    max_price: Optional[float] = Field(
        default=None, alias="maxPrice", description="Preço máximo inclusivo."
    )

    def to_domain(self) -> Optional[SearchFilters]:
        filters = SearchFilters(
            stores=tuple(self.stores or ()),
            min_price=self.min_price,
            max_price=self.max_price,
        )
        return None if filters.is_empty() else filters


class SearchOptionsModel(BaseModel):
    """Per-call options of the POST endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    max_results: Optional[int] = Field(default=None, alias="maxResults", ge=1)
    timeout: Optional[int] = Field(
        default=None, ge=1, description="Tempo limite por provider em milissegundos."
    )


class SearchRequestModel(BaseModel):
    """Body of ``POST /search``."""

    query: str = Field(..., description="Produto a pesquisar.")
    filters: Optional[FiltersModel] = None
    config: Optional[SearchOptionsModel] = None


class ProductResultModel(BaseModel):
    """Canonical offer as exposed by the API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    price: float
    store: str
    url: str
    last_updated: datetime = Field(..., alias="lastUpdated")
    currency: str


class SearchResponseModel(BaseModel):
    """Data model for the response of the search endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    results: List[ProductResultModel]
    total_results: int = Field(..., alias="totalResults")
    search_time: int = Field(..., alias="searchTime")
    query: str
    filters: Optional[FiltersModel] = None

    @classmethod
    def from_domain(cls, response: SearchResponse) -> "SearchResponseModel":
        return cls.model_validate(response.to_dict())


class ErrorResponseModel(BaseModel):
    """Error payload returned on validation or internal failures."""

    error: str
    message: Optional[str] = None
