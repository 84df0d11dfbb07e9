"""Hotel catalogue endpoints.

POST   /hotels                 → create (indexes for search)
PATCH  /hotels/{id}            → update (reindexes)
POST   /hotels/{id}/reviews    → submit review
PATCH  /reviews/{id}           → edit / moderate review
DELETE /reviews/{id}           → delete review
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Response
from pydantic import BaseModel, ConfigDict, Field

from hotelcore.api.errors import domain_errors
from hotelcore.domain import hotels

router = APIRouter(tags=["hotels"])


class CreateHotelRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    slug: str | None = None
    description: str | None = None
    short_description: str | None = None
    city: str
    neighborhood: str | None = None
    country: str
    amenities: list[str] = Field(default_factory=list)
    star_rating: int | None = Field(None, ge=1, le=5)
    price_min_cents: int | None = Field(None, ge=0)
    price_max_cents: int | None = Field(None, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    is_active: bool = True
    is_featured: bool = False


class UpdateHotelRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    slug: str | None = None
    description: str | None = None
    short_description: str | None = None
    city: str | None = None
    neighborhood: str | None = None
    country: str | None = None
    amenities: list[str] | None = None
    star_rating: int | None = Field(None, ge=1, le=5)
    price_min_cents: int | None = Field(None, ge=0)
    price_max_cents: int | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    is_active: bool | None = None
    is_featured: bool | None = None


class ReviewRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: int = Field(..., ge=1, le=5)
    title: str | None = None
    body: str | None = None
    is_approved: bool = False


class UpdateReviewRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: int | None = Field(None, ge=1, le=5)
    title: str | None = None
    body: str | None = None
    is_approved: bool | None = None


@router.post("/hotels", status_code=201)
def create_hotel(body: CreateHotelRequest) -> dict:
    with domain_errors():
        return hotels.create_hotel(body.model_dump(exclude_none=True))


@router.patch("/hotels/{hotel_id}")
def update_hotel(
    body: UpdateHotelRequest,
    hotel_id: str = Path(..., description="Hotel UUID"),
) -> dict:
    with domain_errors():
        return hotels.update_hotel(hotel_id, body.model_dump(exclude_unset=True))


@router.post("/hotels/{hotel_id}/reviews", status_code=201)
def submit_review(
    body: ReviewRequest,
    hotel_id: str = Path(..., description="Hotel UUID"),
) -> dict:
    with domain_errors():
        return hotels.submit_review(
            hotel_id,
            rating=body.rating,
            title=body.title,
            body=body.body,
            is_approved=body.is_approved,
        )


@router.patch("/reviews/{review_id}")
def update_review(
    body: UpdateReviewRequest,
    review_id: str = Path(..., description="Review UUID"),
) -> dict:
    with domain_errors():
        return hotels.update_review(review_id, body.model_dump(exclude_unset=True))


@router.delete("/reviews/{review_id}", status_code=204)
def delete_review(review_id: str = Path(..., description="Review UUID")) -> Response:
    with domain_errors():
        hotels.delete_review(review_id)
    return Response(status_code=204)
