"""Tests for tenant resolution from the request host."""

from lawfirm.middleware.tenant import get_subdomain, landing_path, resolve_landing_slug


class TestGetSubdomain:
    """Leading label of hosts with more than two labels."""

    def test_three_labels(self):
        assert get_subdomain("acme.example.com") == "acme"

    def test_four_labels(self):
        assert get_subdomain("acme.app.example.com") == "acme"

    def test_port_is_stripped(self):
        assert get_subdomain("acme.app.example.com:8443") == "acme"

    def test_two_labels(self):
        assert get_subdomain("example.com") is None

    def test_single_label(self):
        assert get_subdomain("localhost:8000") is None

    def test_ip_address(self):
        """IPv4 hosts have four labels but no tenant."""
        assert get_subdomain("127.0.0.1:8000") is None

    def test_empty_host(self):
        assert get_subdomain("") is None


class TestResolveLandingSlug:
    """Reserved subdomains never resolve to a tenant."""

    def test_tenant_host(self):
        assert resolve_landing_slug("acme.app.example.com") == "acme"

    def test_www_is_reserved(self):
        assert resolve_landing_slug("www.example.com") is None

    def test_app_is_reserved(self):
        assert resolve_landing_slug("app.example.com") is None

    def test_bare_domain(self):
        assert resolve_landing_slug("example.com") is None


class TestLandingPath:
    def test_root(self):
        assert landing_path("acme", "/") == "/landing/acme"

    def test_nested(self):
        assert landing_path("acme", "/contact") == "/landing/acme/contact"

    def test_prefixed_with_slug(self):
        assert landing_path("acme", "/about/team").startswith("/landing/acme")
