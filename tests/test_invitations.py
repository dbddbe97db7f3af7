"""Tests for issuing, listing and accepting invitations."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy import select

from conftest import bearer, make_account
from lawfirm.core.security import decode_session_token
from lawfirm.db.base import utcnow
from lawfirm.integrations.delivery import DeliveryResult
from lawfirm.models import Client, Invitation, OrganizationUser

DELIVERED = DeliveryResult(success=True, message_id="msg_1")
FAILED = DeliveryResult(success=False, error="provider unavailable")


def channels(email=DELIVERED, sms=DELIVERED):
    """Patch both dispatch channels; yields (send_email, send_invitation_sms) mocks."""
    send_email = AsyncMock(return_value=email)
    send_sms = AsyncMock(return_value=sms)
    return (
        patch("lawfirm.integrations.email.send_email", send_email),
        patch("lawfirm.integrations.sms.send_invitation_sms", send_sms),
        send_email,
        send_sms,
    )


async def invite(client, headers, organization, **fields):
    payload = {"organizationId": organization.id, "email": "client@example.com", **fields}
    return await client.post("/api/invitations", json=payload, headers=headers)


async def seed_invitation(db, organization, **fields) -> Invitation:
    invitation = Invitation(
        organization_id=organization.id,
        email=fields.pop("email", "client@example.com"),
        token=fields.pop("token", "t" * 48),
        expires_at=fields.pop("expires_at", utcnow() + timedelta(days=7)),
        status=fields.pop("status", "SENT"),
        **fields,
    )
    db.add(invitation)
    await db.commit()
    return invitation


class TestCreate:

    async def test_sms_failure_still_sent_with_email_only(self, client, db, organization, owner_headers):
        email_patch, sms_patch, send_email, send_sms = channels(sms=FAILED)
        with email_patch, sms_patch:
            response = await invite(
                client, owner_headers, organization, phone="5551234567", sendVia=["email", "sms"]
            )

        assert response.status_code == 200
        body = response.json()["invitation"]
        assert body["sentVia"] == ["email"]
        assert body["inviteUrl"] == f"https://app.example.com/invite/{body['token']}"
        assert body["qrCodeUrl"].startswith("data:image/png;base64,")
        assert len(body["token"]) == 48
        send_sms.assert_awaited_once()

        invitation = await db.scalar(select(Invitation).where(Invitation.id == body["id"]))
        assert invitation.status == "SENT"
        assert invitation.sent_via == ["email"]
        assert invitation.sent_at is not None

    async def test_default_channel_is_email(self, client, organization, owner_headers):
        email_patch, sms_patch, send_email, send_sms = channels()
        with email_patch, sms_patch:
            response = await invite(client, owner_headers, organization, phone="5551234567")

        assert response.json()["invitation"]["sentVia"] == ["email"]
        send_sms.assert_not_awaited()
        assert "Acme Legal" in send_email.call_args.kwargs["subject"]

    async def test_sms_skipped_without_phone(self, client, organization, owner_headers):
        email_patch, sms_patch, send_email, send_sms = channels()
        with email_patch, sms_patch:
            response = await invite(client, owner_headers, organization, sendVia=["email", "sms"])

        assert response.json()["invitation"]["sentVia"] == ["email"]
        send_sms.assert_not_awaited()

    async def test_all_channels_fail_still_sent(self, client, db, organization, owner_headers):
        email_patch, sms_patch, _, _ = channels(email=FAILED, sms=FAILED)
        with email_patch, sms_patch:
            response = await invite(
                client, owner_headers, organization, phone="5551234567", sendVia=["email", "sms"]
            )

        body = response.json()["invitation"]
        assert body["sentVia"] == []
        invitation = await db.scalar(select(Invitation).where(Invitation.id == body["id"]))
        assert invitation.status == "SENT"

    async def test_raising_channel_is_absorbed(self, client, organization, owner_headers):
        send_email = AsyncMock(side_effect=RuntimeError("boom"))
        with patch("lawfirm.integrations.email.send_email", send_email):
            response = await invite(client, owner_headers, organization)
        assert response.status_code == 200
        assert response.json()["invitation"]["sentVia"] == []

    async def test_non_member_gets_not_found(self, client, organization, outsider_headers):
        response = await invite(client, outsider_headers, organization)
        assert response.status_code == 404
        assert response.json() == {"error": "Organization not found"}

    async def test_anonymous(self, client, organization):
        response = await client.post(
            "/api/invitations", json={"organizationId": organization.id, "email": "client@example.com"}
        )
        assert response.status_code == 401

    async def test_invalid_channel(self, client, organization, owner_headers):
        response = await invite(client, owner_headers, organization, sendVia=["fax"])
        assert response.status_code == 400

    async def test_invalid_phone(self, client, organization, owner_headers):
        response = await invite(client, owner_headers, organization, phone="12-34")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid input data"}


class TestList:

    async def test_newest_first_with_pagination(self, client, db, organization, owner_headers):
        for i in range(3):
            await seed_invitation(db, organization, token=f"{i}" * 48, email=f"c{i}@example.com")

        response = await client.get(
            "/api/invitations",
            params={"organizationId": organization.id, "limit": 2},
            headers=owner_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
        assert [i["email"] for i in body["invitations"]] == ["c2@example.com", "c1@example.com"]

    async def test_status_filter(self, client, db, organization, owner_headers):
        await seed_invitation(db, organization, token="a" * 48)
        await seed_invitation(db, organization, token="b" * 48, status="ACCEPTED")

        response = await client.get(
            "/api/invitations",
            params={"organizationId": organization.id, "status": "ACCEPTED"},
            headers=owner_headers,
        )
        assert response.json()["pagination"]["total"] == 1

    async def test_non_member_forbidden(self, client, organization, outsider_headers):
        response = await client.get(
            "/api/invitations", params={"organizationId": organization.id}, headers=outsider_headers
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Access denied"}

    async def test_organization_required(self, client, owner_headers):
        response = await client.get("/api/invitations", headers=owner_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Organization ID required"}


class TestLookupAndAccept:

    async def test_public_lookup(self, client, db, organization):
        invitation = await seed_invitation(db, organization)
        response = await client.get(f"/api/invitations/{invitation.token}")
        assert response.status_code == 200
        assert response.json()["organizationName"] == "Acme Legal"
        assert response.json()["status"] == "SENT"

    async def test_unknown_token(self, client, tables):
        response = await client.get("/api/invitations/missing")
        assert response.status_code == 404

    async def test_expired_on_read(self, client, db, organization):
        invitation = await seed_invitation(db, organization, expires_at=utcnow() - timedelta(hours=1))
        response = await client.get(f"/api/invitations/{invitation.token}")
        assert response.json()["status"] == "EXPIRED"

    async def test_accept_expired_rejected(self, client, db, organization):
        invitation = await seed_invitation(db, organization, expires_at=utcnow() - timedelta(hours=1))
        invitee = await make_account(db, "client@example.com")
        headers = await bearer(db, invitee)

        response = await client.post(f"/api/invitations/{invitation.token}/accept", headers=headers)
        assert response.status_code == 400
        await db.refresh(invitation)
        assert invitation.status == "EXPIRED"

    async def test_accept_team_member(self, client, db, organization):
        invitation = await seed_invitation(db, organization, email="associate@example.com", type="TEAM_MEMBER")
        invitee = await make_account(db, "associate@example.com")
        headers = await bearer(db, invitee)

        response = await client.post(f"/api/invitations/{invitation.token}/accept", headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["invitation"]["status"] == "ACCEPTED"
        claims = decode_session_token(body["accessToken"])
        assert claims["organizations"][0]["organizationId"] == organization.id
        assert claims["organizations"][0]["role"] == "MEMBER"

        membership = await db.scalar(
            select(OrganizationUser).where(OrganizationUser.account_id == invitee.id)
        )
        assert membership.organization_id == organization.id

        again = await client.post(f"/api/invitations/{invitation.token}/accept", headers=headers)
        assert again.status_code == 400

    async def test_accept_client_creates_client(self, client, db, organization):
        invitation = await seed_invitation(db, organization, first_name="Cora", type="CLIENT")
        invitee = await make_account(db, "client@example.com", "Cora", "Client")
        headers = await bearer(db, invitee)

        send_email = AsyncMock(return_value=DELIVERED)
        with patch("lawfirm.integrations.email.send_email", send_email):
            response = await client.post(f"/api/invitations/{invitation.token}/accept", headers=headers)
        assert response.status_code == 200
        assert response.json()["accessToken"] is None
        assert send_email.call_args.kwargs["subject"] == "Welcome to Acme Legal"

        record = await db.scalar(select(Client).where(Client.organization_id == organization.id))
        assert record.account_id == invitee.id
        assert record.first_name == "Cora"

    async def test_accept_wrong_email(self, client, db, organization, outsider_headers):
        invitation = await seed_invitation(db, organization)
        response = await client.post(f"/api/invitations/{invitation.token}/accept", headers=outsider_headers)
        assert response.status_code == 403
