"""
middleware/tenant.py
--------------------
Tenant resolution from the request host.

A host with more than two labels carries a tenant slug in its leading label
(``acme.app.example.com`` → ``acme``). ``www`` and ``app`` are reserved for
the platform itself and never resolve to a tenant. Whether the slug names a
real organization is left to the landing page handler.
"""

import ipaddress
from typing import Optional

RESERVED_SUBDOMAINS = frozenset({"www", "app"})
LANDING_PREFIX = "/landing"


def get_subdomain(host: str) -> Optional[str]:
    hostname = host.split(":", 1)[0].strip().lower()
    if not hostname:
        return None
    try:
        ipaddress.ip_address(hostname)
        return None
    except ValueError:
        pass

    parts = hostname.split(".")
    if len(parts) > 2:
        return parts[0]
    return None


def resolve_landing_slug(host: str) -> Optional[str]:
    subdomain = get_subdomain(host)
    if subdomain and subdomain not in RESERVED_SUBDOMAINS:
        return subdomain
    return None


def landing_path(slug: str, path: str) -> str:
    """Tenant-scoped landing path for ``path`` requested on ``slug``'s host."""
    if path in ("", "/"):
        return f"{LANDING_PREFIX}/{slug}"
    return f"{LANDING_PREFIX}/{slug}{path}"
