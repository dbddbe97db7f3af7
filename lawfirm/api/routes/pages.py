"""
api/routes/pages.py
-------------------
Page payloads served behind the route guard.

GET /landing/{slug}[/{page}]  Public firm landing data. Tenant subdomains
                              are rewritten here by the route guard.
GET /dashboard                Signed-in session summary (the guard redirects
                              anonymous requests to /login).
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.errors import NotFound
from lawfirm.db.session import get_db
from lawfirm.dependencies import get_session_claims
from lawfirm.schemas.organization import BrandingRead, DashboardRead, LandingRead
from lawfirm.services.organization_service import OrganizationService

router = APIRouter(tags=["Pages"])


@router.get("/landing/{slug}", response_model=LandingRead, summary="Firm landing page")
@router.get("/landing/{slug}/{page:path}", response_model=LandingRead, include_in_schema=False)
async def landing(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Optional[str] = None,
) -> LandingRead:
    organization = await OrganizationService.get_by_slug(db, slug)
    if organization is None:
        raise NotFound("Organization not found")

    branding = organization.branding
    return LandingRead(
        name=organization.name,
        slug=organization.slug,
        email=organization.email,
        phone=organization.phone,
        website=organization.website,
        client_portal_enabled=organization.settings.client_portal_enabled if organization.settings else True,
        branding=BrandingRead.model_validate(branding) if branding else None,
        page=page or None,
    )


@router.get("/dashboard", response_model=DashboardRead, summary="Dashboard summary")
async def dashboard(
    claims: Annotated[Dict[str, Any], Depends(get_session_claims)],
) -> DashboardRead:
    return DashboardRead(
        user_id=claims["sub"],
        email=claims["email"],
        name=claims["name"],
        organizations=claims.get("organizations", []),
    )
