"""Tests for infrastructure.identity resolver and models."""

import pytest

from infrastructure.identity import IdentityResolver, IdentitySource, Role, User


@pytest.mark.unit
class TestResolveFromHeaders:
    """Test suite for header resolution."""

    def test_resolves_all_headers(self):
        user = IdentityResolver().resolve_from_headers(
            {
                "X-User-Id": "u-42",
                "X-User-Email": "anna@hotel.example",
                "X-User-Name": "Anna",
                "X-User-Roles": "Translator, reviewer",
            }
        )

        assert user.user_id == "u-42"
        assert user.email == "anna@hotel.example"
        assert user.display_name == "Anna"
        assert user.source == IdentitySource.API_HEADERS
        assert user.roles == ["translator", "reviewer"]

    def test_display_name_falls_back_to_email_then_id(self):
        resolver = IdentityResolver()

        with_email = resolver.resolve_from_headers(
            {"x-user-id": "u-1", "x-user-email": "a@hotel.example"}
        )
        bare = resolver.resolve_from_headers({"x-user-id": "u-2"})

        assert with_email.display_name == "a@hotel.example"
        assert bare.display_name == "u-2"
        assert bare.roles == []

    @pytest.mark.parametrize("headers", [{}, {"X-User-Id": "   "}, {"X-User-Roles": "admin"}])
    def test_missing_user_id_returns_none(self, headers):
        assert IdentityResolver().resolve_from_headers(headers) is None


@pytest.mark.unit
class TestSystemIdentity:
    """Test suite for the background worker identity."""

    def test_system_user_is_admin(self):
        user = IdentityResolver(system_user_id="worker").resolve_system_identity()

        assert user.user_id == "worker"
        assert user.source == IdentitySource.SYSTEM
        assert user.has_role(Role.REVIEWER)


@pytest.mark.unit
class TestUserRoles:
    """Test suite for User.has_role()."""

    def test_matching_role(self):
        user = User(user_id="u", source=IdentitySource.API_HEADERS, roles=["translator"])

        assert user.has_role(Role.TRANSLATOR)
        assert user.has_role("TRANSLATOR")
        assert not user.has_role(Role.REVIEWER)

    def test_any_of_several_roles(self):
        user = User(user_id="u", source=IdentitySource.API_HEADERS, roles=["reviewer"])

        assert user.has_role(Role.TRANSLATOR, Role.REVIEWER)

    def test_admin_holds_every_role(self):
        user = User(user_id="u", source=IdentitySource.API_HEADERS, roles=["Admin"])

        assert user.has_role(Role.TRANSLATOR)
        assert user.has_role("anything")
