"""
Pydantic schemas for the events API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from events_api.sources.base import NormalizedEvent


class EventListResponse(BaseModel):
    items: list[NormalizedEvent]


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class SignInRequest(BaseModel):
    password: str = Field(default="", max_length=256)


class SignInResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class Organization(BaseModel):
    id: int
    name: str
    link: Optional[str] = None


class OrganizationListResponse(BaseModel):
    organizations: list[Organization]


class CreateOrganizationRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=256)
    link: Optional[str] = Field(default=None, max_length=2048)


class CreateOrganizationResponse(BaseModel):
    id: int


class OpportunityListResponse(BaseModel):
    opportunities: list[str]


class CreateOpportunityRequest(BaseModel):
    organization_id: Optional[int] = None
    opportunity: Optional[str] = Field(default=None, max_length=4096)


class SuccessResponse(BaseModel):
    success: bool


class CreateImageRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    organization: Optional[str] = None
    date: Optional[datetime] = None


class Image(BaseModel):
    id: int
    url: str
    organization: Optional[str] = None
    date: Optional[datetime] = None


class ImageListResponse(BaseModel):
    images: list[Image]
