"""
schemas/organization.py
-----------------------
Public landing payload and the signed-in dashboard summary.
"""

from typing import List, Optional

from lawfirm.schemas.auth import MembershipClaim
from lawfirm.schemas.base import CamelModel


class BrandingRead(CamelModel):
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    tagline: Optional[str] = None


class LandingRead(CamelModel):
    name: str
    slug: str
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    client_portal_enabled: bool
    branding: Optional[BrandingRead] = None
    page: Optional[str] = None


class DashboardRead(CamelModel):
    user_id: str
    email: str
    name: str
    organizations: List[MembershipClaim]
