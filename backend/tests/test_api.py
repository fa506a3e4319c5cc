"""End-to-end tests for the v1 HTTP API."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

from httpx import AsyncClient
from jsonschema import validate
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import TEST_PASSWORD, make_deal
from stacks.models import Deal, Merchant, User

POPULATED_DEAL_SCHEMA = {
    "type": "object",
    "required": [
        "id", "merchant_id", "name", "description", "barcode", "is_active",
        "published_at", "merchant", "category", "logo_url", "address", "lat", "lng",
    ],
    "properties": {
        "id": {"type": "string"},
        "merchant_id": {"type": "string"},
        "name": {"type": "string"},
        "barcode": {"type": ["string", "null"]},
        "is_active": {"type": "boolean"},
        "merchant": {"type": "string"},
        "category": {"type": "string"},
        "lat": {"type": "number"},
        "lng": {"type": "number"},
    },
}

ERROR_SCHEMA = {
    "type": "object",
    "required": ["status", "error"],
    "properties": {
        "status": {"const": "error"},
        "error": {
            "type": "object",
            "required": ["code", "message"],
            "properties": {
                "code": {"type": "string"},
                "message": {"type": "string"},
                "field": {"type": ["string", "null"]},
            },
        },
    },
}


# ============================================================================
# TESTS: HEALTH / AUTH
# ============================================================================

class TestHealthAndAuth:
    """Tests for health, registration and login endpoints."""

    async def test_health(self, client: AsyncClient):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "services": {"database": "ok", "redis": "disabled"},
        }

    async def test_register_login_and_me(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/users",
            json={
                "email": "ada@example.com",
                "password": TEST_PASSWORD,
                "first_name": "Ada",
                "last_name": "Lovelace",
            },
        )
        assert response.status_code == 201
        assert response.json()["data"]["held_deals"] == []

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "ada@example.com", "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        token = response.json()["data"]["token"]["access_token"]

        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "ada@example.com"

    async def test_basic_auth_token(self, client: AsyncClient, sample_user: User):
        response = await client.post(
            "/api/v1/auth/token", auth=(sample_user.email, TEST_PASSWORD)
        )

        assert response.status_code == 200
        assert response.json()["data"]["token"]["token_type"] == "bearer"

    async def test_bad_credentials_are_generic(self, client: AsyncClient, sample_user: User):
        unknown = await client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@example.com", "password": TEST_PASSWORD},
        )
        wrong = await client.post(
            "/api/v1/auth/login",
            json={"email": sample_user.email, "password": "wrong-password"},
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        validate(instance=unknown.json(), schema=ERROR_SCHEMA)

    async def test_registration_validation_envelope(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/users",
            json={"email": "ada@example.com", "password": "short", "first_name": "A", "last_name": "L"},
        )

        assert response.status_code == 422
        validate(instance=response.json(), schema=ERROR_SCHEMA)
        assert response.json()["error"]["field"] == "password"

    async def test_missing_and_invalid_tokens(self, client: AsyncClient):
        missing = await client.get("/api/v1/users/me")
        invalid = await client.get(
            "/api/v1/users/me", headers={"Authorization": "Bearer nonsense"}
        )

        assert missing.status_code == 401
        assert invalid.status_code == 401


# ============================================================================
# TESTS: DEAL LISTING
# ============================================================================

class TestDealListing:
    """Tests for GET /deals."""

    async def test_nearest_first(
        self,
        client: AsyncClient,
        auth_headers,
        test_db: AsyncSession,
        sample_user: User,
        sample_merchant: Merchant,
        other_merchant: Merchant,
    ):
        far = await make_deal(test_db, sample_merchant, name="far", minutes=0)
        near = await make_deal(test_db, other_merchant, name="near", minutes=1)

        response = await client.get(
            "/api/v1/deals",
            params={"category": "food", "lat": 0, "lng": 0},
            headers=auth_headers(sample_user),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [d["id"] for d in data] == [str(near.id), str(far.id)]
        for item in data:
            validate(instance=item, schema=POPULATED_DEAL_SCHEMA)
        assert data[0]["merchant"] == "Rival Cafe"

    async def test_category_is_required(
        self, client: AsyncClient, auth_headers, sample_user: User
    ):
        response = await client.get("/api/v1/deals", headers=auth_headers(sample_user))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "missing_filter"

    async def test_unknown_parameter_rejected(
        self, client: AsyncClient, auth_headers, sample_user: User
    ):
        response = await client.get(
            "/api/v1/deals",
            params={"category": "food", "sort": "price"},
            headers=auth_headers(sample_user),
        )

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "sort"

    async def test_listing_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/deals", params={"category": "food"})

        assert response.status_code == 401

    async def test_held_deal_leaves_listing(
        self,
        client: AsyncClient,
        auth_headers,
        sample_user: User,
        sample_deal: Deal,
    ):
        headers = auth_headers(sample_user)

        first = await client.put(f"/api/v1/users/add/{sample_deal.id}", headers=headers)
        second = await client.put(f"/api/v1/users/add/{sample_deal.id}", headers=headers)
        assert first.status_code == second.status_code == 200
        assert second.json()["data"]["held_deals"] == [str(sample_deal.id)]

        listing = await client.get("/api/v1/deals", params={"category": "food"}, headers=headers)
        assert listing.json()["data"] == []

        held = await client.get("/api/v1/users/deals", headers=headers)
        assert [d["id"] for d in held.json()["data"]] == [str(sample_deal.id)]

    async def test_dismissed_deal_stays_listed(
        self,
        client: AsyncClient,
        auth_headers,
        sample_user: User,
        sample_deal: Deal,
    ):
        headers = auth_headers(sample_user)
        await client.put(f"/api/v1/users/add/{sample_deal.id}", headers=headers)

        response = await client.delete(f"/api/v1/users/delete/{sample_deal.id}", headers=headers)
        assert response.json()["data"]["dismissed_deals"] == [str(sample_deal.id)]
        assert response.json()["data"]["held_deals"] == []

        listing = await client.get("/api/v1/deals", params={"category": "food"}, headers=headers)
        assert [d["id"] for d in listing.json()["data"]] == [str(sample_deal.id)]

    async def test_redeemed_deal_stays_redeemed(
        self,
        client: AsyncClient,
        auth_headers,
        sample_user: User,
        sample_deal: Deal,
    ):
        headers = auth_headers(sample_user)
        await client.put(f"/api/v1/users/add/{sample_deal.id}", headers=headers)
        await client.put(f"/api/v1/users/redeem/{sample_deal.id}", headers=headers)
        await client.put(f"/api/v1/users/add/{sample_deal.id}", headers=headers)

        response = await client.delete(f"/api/v1/users/delete/{sample_deal.id}", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["redeemed_deals"] == [str(sample_deal.id)]
        assert data["held_deals"] == []
        assert data["dismissed_deals"] == []

        listing = await client.get("/api/v1/deals", params={"category": "food"}, headers=headers)
        assert listing.json()["data"] == []

    async def test_adding_unknown_deal_is_not_found(
        self, client: AsyncClient, auth_headers, sample_user: User
    ):
        response = await client.put(
            f"/api/v1/users/add/{uuid4()}", headers=auth_headers(sample_user)
        )

        assert response.status_code == 404


# ============================================================================
# TESTS: DEAL MUTATIONS
# ============================================================================

class TestDealMutations:
    """Tests for the owner-scoped deal endpoints."""

    async def test_owner_creates_and_updates_deal(
        self,
        client: AsyncClient,
        auth_headers,
        sample_owner: User,
        sample_merchant: Merchant,
    ):
        headers = auth_headers(sample_owner)
        created = await client.post(
            "/api/v1/deals",
            json={
                "merchant_id": str(sample_merchant.id),
                "name": "Half price bread",
                "description": "After 5pm",
                "barcode": None,
            },
            headers=headers,
        )
        assert created.status_code == 201
        deal_id = created.json()["data"]["id"]

        updated = await client.put(
            f"/api/v1/deals/{deal_id}",
            json={"merchant_id": str(sample_merchant.id), "changes": {"name": "Free bread"}},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["name"] == "Free bread"

        mine = await client.get("/api/v1/deals/merchant", headers=headers)
        assert [d["id"] for d in mine.json()["data"]] == [deal_id]

    async def test_non_owner_update_is_denied(
        self,
        client: AsyncClient,
        auth_headers,
        other_owner: User,
        other_merchant: Merchant,
        sample_deal: Deal,
    ):
        response = await client.put(
            f"/api/v1/deals/{sample_deal.id}",
            json={"merchant_id": str(other_merchant.id), "changes": {"name": "x"}},
            headers=auth_headers(other_owner),
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "cannot_mutate"

        deal = await client.get(f"/api/v1/deals/{sample_deal.id}")
        assert deal.json()["data"]["name"] == "Two for one"

    async def test_missing_deal_denial_matches_foreign_deal_denial(
        self,
        client: AsyncClient,
        auth_headers,
        sample_owner: User,
        sample_merchant: Merchant,
        other_merchant: Merchant,
        sample_deal: Deal,
    ):
        headers = auth_headers(sample_owner)

        missing = await client.put(
            f"/api/v1/deals/{uuid4()}",
            json={"merchant_id": str(sample_merchant.id), "changes": {"name": "x"}},
            headers=headers,
        )
        mismatched = await client.put(
            f"/api/v1/deals/{sample_deal.id}",
            json={"merchant_id": str(other_merchant.id), "changes": {"name": "x"}},
            headers=headers,
        )

        assert missing.status_code == mismatched.status_code == 401
        assert missing.json() == mismatched.json()

    async def test_disallowed_field_rejects_update(
        self,
        client: AsyncClient,
        auth_headers,
        sample_owner: User,
        sample_merchant: Merchant,
        sample_deal: Deal,
    ):
        response = await client.put(
            f"/api/v1/deals/{sample_deal.id}",
            json={
                "merchant_id": str(sample_merchant.id),
                "changes": {"name": "renamed", "is_active": False},
            },
            headers=auth_headers(sample_owner),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid is_active field in request body"

        deal = await client.get(f"/api/v1/deals/{sample_deal.id}")
        assert deal.json()["data"]["name"] == "Two for one"
        assert deal.json()["data"]["is_active"] is True

    async def test_owner_deletes_deal(
        self,
        client: AsyncClient,
        auth_headers,
        sample_owner: User,
        sample_merchant: Merchant,
        sample_deal: Deal,
    ):
        response = await client.delete(
            f"/api/v1/deals/{sample_deal.id}",
            params={"merchant_id": str(sample_merchant.id)},
            headers=auth_headers(sample_owner),
        )
        assert response.status_code == 204

        gone = await client.get(f"/api/v1/deals/{sample_deal.id}")
        assert gone.status_code == 404

    async def test_non_owner_delete_is_denied(
        self,
        client: AsyncClient,
        auth_headers,
        other_owner: User,
        sample_merchant: Merchant,
        sample_deal: Deal,
    ):
        response = await client.delete(
            f"/api/v1/deals/{sample_deal.id}",
            params={"merchant_id": str(sample_merchant.id)},
            headers=auth_headers(other_owner),
        )

        assert response.status_code == 401
        still_there = await client.get(f"/api/v1/deals/{sample_deal.id}")
        assert still_there.status_code == 200


# ============================================================================
# TESTS: MERCHANTS / USERS
# ============================================================================

class TestMerchantAndUserEndpoints:
    """Tests for merchant sign-up, profile updates and uploads."""

    async def test_merchant_sign_up_then_me(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/merchants",
            json={
                "email": "bakery@example.com",
                "password": TEST_PASSWORD,
                "name": "Corner Bakery",
                "category": "food",
                "address": "12 Mill Lane",
                "lat": 51.5,
                "lng": -0.12,
            },
        )
        assert response.status_code == 201
        merchant_id = response.json()["data"]["id"]

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "bakery@example.com", "password": TEST_PASSWORD},
        )
        assert login.json()["data"]["user"]["is_merchant"] is True
        token = login.json()["data"]["token"]["access_token"]

        me = await client.get(
            "/api/v1/merchants/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert me.json()["data"]["id"] == merchant_id

    async def test_merchant_update_by_non_owner_denied(
        self,
        client: AsyncClient,
        auth_headers,
        other_owner: User,
        sample_merchant: Merchant,
    ):
        response = await client.put(
            f"/api/v1/merchants/{sample_merchant.id}",
            json={"name": "Taken over"},
            headers=auth_headers(other_owner),
        )

        assert response.status_code == 401

    async def test_merchant_update_by_owner(
        self,
        client: AsyncClient,
        auth_headers,
        sample_owner: User,
        sample_merchant: Merchant,
    ):
        response = await client.put(
            f"/api/v1/merchants/{sample_merchant.id}",
            json={"category": "cafe"},
            headers=auth_headers(sample_owner),
        )

        assert response.status_code == 200
        assert response.json()["data"]["category"] == "cafe"

    async def test_sign_logo_upload(self, client: AsyncClient, auth_headers, sample_owner: User):
        s3 = MagicMock()
        s3.generate_presigned_url.return_value = "https://signed.example.com/put"

        with patch("stacks.services.upload_service.boto3.client", return_value=s3):
            response = await client.get(
                "/api/v1/merchants/sign-s3",
                params={"file-name": "logo.png", "file-type": "image/png"},
                headers=auth_headers(sample_owner),
            )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "signed_request": "https://signed.example.com/put",
            "url": "https://stacks-test-bucket.s3.amazonaws.com/logo.png",
        }

    async def test_profile_update_rejects_disallowed_field(
        self, client: AsyncClient, auth_headers, sample_user: User
    ):
        response = await client.put(
            "/api/v1/users/me",
            json={"first_name": "Ada", "is_merchant": True},
            headers=auth_headers(sample_user),
        )

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "is_merchant"

    async def test_profile_update(self, client: AsyncClient, auth_headers, sample_user: User):
        response = await client.put(
            "/api/v1/users/me",
            json={"first_name": "Ada"},
            headers=auth_headers(sample_user),
        )

        assert response.status_code == 200
        assert response.json()["data"]["first_name"] == "Ada"
