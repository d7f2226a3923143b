"""Request and response models for the gateway's HTTP surface."""

from typing import Optional

from pydantic import BaseModel, Field

from docgate.documents import ProductDocument, ProductGroup


class IntroduceGoodsRequest(BaseModel):
    """Incoming request to create an "introduce goods" document."""

    product_group: ProductGroup
    document: ProductDocument
    signature: str = Field(..., min_length=1, description="Detached document signature")


class DocumentCreatedResponse(BaseModel):
    """Successful document creation."""

    id: Optional[str] = Field(
        default=None, description="Identifier assigned by the API, if returned"
    )


class GatewayStatus(BaseModel):
    """Current gateway lifecycle and limiter state."""

    state: str
    epoch: int
    credentials: Optional[str] = None
    available_permits: int
    capacity: int


class ErrorDetail(BaseModel):
    """Structured error detail."""

    type: str
    message: str
    upstream_status: Optional[int] = None
    upstream_body: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response envelope."""

    error: ErrorDetail
