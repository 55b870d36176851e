"""
HTTP routes for organizations, volunteer opportunities, flyer images and the
shared organization sign-in.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from events_api.db import DbClient
from events_api.dependencies import get_db_client
from events_api.errors import ValidationError
from events_api.schemas import (
    CreateImageRequest,
    CreateOpportunityRequest,
    CreateOrganizationRequest,
    CreateOrganizationResponse,
    Image,
    ImageListResponse,
    OpportunityListResponse,
    Organization,
    OrganizationListResponse,
    SignInRequest,
    SignInResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        logger.error("Stored password hash is malformed")
        return False


@router.post("/org-signin", response_model=SignInResponse)
def org_signin(payload: SignInRequest, db: DbClient = Depends(get_db_client)):
    password_hash = db.get_password_hash()
    if not password_hash:
        return JSONResponse(
            status_code=500, content={"success": False, "message": "No password set"}
        )
    if not check_password(payload.password, password_hash):
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": "Incorrect password"},
        )
    return SignInResponse(success=True)


@router.get("/organizations", response_model=OrganizationListResponse)
def list_organizations(db: DbClient = Depends(get_db_client)):
    organizations = [Organization(**org.as_dict()) for org in db.list_organizations()]
    return OrganizationListResponse(organizations=organizations)


@router.post("/organizations", response_model=CreateOrganizationResponse)
def create_organization(
    payload: CreateOrganizationRequest, db: DbClient = Depends(get_db_client)
):
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("Organization name is required")
    org_id = db.create_organization(name, payload.link)
    logger.info("Created organization %s (%s)", org_id, name)
    return CreateOrganizationResponse(id=org_id)


@router.get("/opportunities", response_model=OpportunityListResponse)
def list_opportunities(
    organization_id: Optional[int] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    if organization_id is None:
        raise ValidationError("organization_id is required")
    return OpportunityListResponse(opportunities=db.list_opportunities(organization_id))


@router.post("/opportunities", response_model=SuccessResponse)
def add_opportunity(
    payload: CreateOpportunityRequest, db: DbClient = Depends(get_db_client)
):
    opportunity = (payload.opportunity or "").strip()
    if payload.organization_id is None or not opportunity:
        raise ValidationError("organization_id and opportunity are required")
    db.add_opportunity(payload.organization_id, opportunity)
    return SuccessResponse(success=True)


@router.get("/images", response_model=ImageListResponse)
def list_images(
    limit: int = Query(100, ge=1, le=500),
    db: DbClient = Depends(get_db_client),
):
    images = [Image(**asdict(image)) for image in db.list_images(limit=limit)]
    return ImageListResponse(images=images)


@router.post("/images", response_model=Image)
def add_image(payload: CreateImageRequest, db: DbClient = Depends(get_db_client)):
    """Record a flyer already uploaded to the image worker."""
    record = db.add_image(payload.url, payload.organization, payload.date)
    return Image(**asdict(record))
