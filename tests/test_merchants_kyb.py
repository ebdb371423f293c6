"""Tests for merchant onboarding, KYB submission and the admin review queue."""

from unittest.mock import AsyncMock, MagicMock, patch

from labsupply.models.audit import AuditEvent
from labsupply.models.merchant import Merchant

from portal_base import API, PASSWORD, PortalTestCase

KYB = {"legal_business_name": "Peptide Store LLC", "ein": "12-3456789", "business_address": "1 Main St, Austin TX"}


class TestMerchantOnboarding(PortalTestCase):
    def test_register_creates_pending_merchant_with_wallet(self):
        r = self.client.post(f"{API}/merchant/register", json={
            "email": "Owner@PeptideShop.io", "password": PASSWORD, "company_name": "Peptide Shop",
        })
        self.assertEqual(r.status_code, 201)
        body = r.json()
        self.assertEqual((body["email"], body["status"], body["kyb_status"]), ("owner@peptideshop.io", "pending", "not_started"))
        self.assertFalse(body["can_ship"])

        self.db.expire_all()
        merchant = self.db.query(Merchant).one()
        self.assertEqual([(w.currency, w.balance_cents) for w in merchant.wallets], [("USD", 0)])

        dup = self.client.post(f"{API}/merchant/register", json={
            "email": "owner@peptideshop.io", "password": PASSWORD, "company_name": "Again",
        })
        self.assertEqual(dup.status_code, 400)

    def test_login_and_me(self):
        self.create_merchant(email="shop@peptidestore.io")
        r = self.client.post(f"{API}/merchant/login", json={"email": "shop@peptidestore.io", "password": PASSWORD})
        self.assertEqual(r.status_code, 200)
        headers = {"Authorization": f"Bearer {r.json()['access_token']}"}
        self.assertEqual(self.client.get(f"{API}/merchant/me", headers=headers).json()["company_name"], "Peptide Store")

        bad = self.client.post(f"{API}/merchant/login", json={"email": "shop@peptidestore.io", "password": "nope-nope"})
        self.assertEqual(bad.status_code, 401)

    def test_admin_token_is_not_a_merchant_token(self):
        admin = self.create_admin()
        self.assertEqual(self.client.get(f"{API}/merchant/me", headers=self.admin_headers(admin)).status_code, 401)

    def test_submit_kyb(self):
        merchant = self.create_merchant()
        r = self.client.post(f"{API}/merchant/kyb", json=KYB, headers=self.merchant_headers(merchant))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["kyb_status"], "in_progress")
        self.assertIsNotNone(r.json()["kyb_submitted_at"])

        again = self.client.post(f"{API}/merchant/kyb", json=KYB, headers=self.merchant_headers(merchant))
        self.assertEqual(again.status_code, 409)

    def test_resubmit_after_rejection(self):
        merchant = self.create_merchant(kyb_status="rejected", kyb_rejection_reason="Blurry documents")
        r = self.client.post(f"{API}/merchant/kyb", json=KYB, headers=self.merchant_headers(merchant))
        self.assertEqual(r.status_code, 200)
        self.assertIsNone(r.json()["kyb_rejection_reason"])

    def test_kyb_payload_is_validated(self):
        merchant = self.create_merchant()
        r = self.client.post(f"{API}/merchant/kyb", json={**KYB, "ein": "123"}, headers=self.merchant_headers(merchant))
        self.assertEqual(r.status_code, 422)
        self.assertIn("details", r.json())


class TestAdminMerchants(PortalTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.create_admin()
        self.headers = self.admin_headers(self.admin)

    def test_list_and_filter(self):
        self.create_merchant(email="a@peptidestore.io", company_name="Alpha Labs")
        self.create_merchant(email="b@peptidestore.io", company_name="Beta Peptides", status="approved", kyb_status="approved")

        body = self.client.get(f"{API}/admin/merchants", headers=self.headers).json()
        self.assertEqual(body["total"], 2)
        body = self.client.get(f"{API}/admin/merchants", params={"status": "approved"}, headers=self.headers).json()
        self.assertEqual([m["company_name"] for m in body["items"]], ["Beta Peptides"])
        body = self.client.get(f"{API}/admin/merchants", params={"search": "alpha"}, headers=self.headers).json()
        self.assertEqual(body["total"], 1)

        bad = self.client.get(f"{API}/admin/merchants", params={"status": "deleted"}, headers=self.headers)
        self.assertEqual(bad.status_code, 422)

    def test_update_merchant(self):
        merchant = self.create_merchant()
        r = self.client.patch(f"{API}/admin/merchants/{merchant.id}",
                              json={"price_adjustment_percent": -10, "can_ship": True}, headers=self.headers)
        self.assertEqual(r.status_code, 200)
        self.assertEqual((r.json()["price_adjustment_percent"], r.json()["can_ship"]), (-10, True))

        self.assertEqual(self.client.patch(f"{API}/admin/merchants/{merchant.id}", json={}, headers=self.headers).status_code, 400)
        self.assertEqual(self.client.patch(f"{API}/admin/merchants/999", json={"can_ship": True}, headers=self.headers).status_code, 404)

    def test_review_queue(self):
        self.create_merchant(email="a@peptidestore.io", kyb_status="in_progress")
        self.create_merchant(email="b@peptidestore.io", kyb_status="approved", status="approved")
        self.create_merchant(email="c@peptidestore.io", kyb_status="rejected")

        body = self.client.get(f"{API}/admin/kyb-review", headers=self.headers).json()
        self.assertEqual([m["email"] for m in body["data"]], ["a@peptidestore.io"])
        self.assertEqual(body["stats"], {"approved_count": 1})

    def test_reject(self):
        merchant = self.create_merchant(kyb_status="in_progress")
        r = self.client.post(f"{API}/admin/kyb-review", json={
            "merchant_id": merchant.id, "action": "reject", "reason": "EIN mismatch",
        }, headers=self.headers)
        self.assertEqual(r.json(), {"success": True, "action": "rejected"})

        self.db.expire_all()
        merchant = self.db.query(Merchant).one()
        self.assertEqual((merchant.kyb_status, merchant.status, merchant.can_ship), ("rejected", "suspended", False))
        self.assertEqual(merchant.kyb_rejection_reason, "EIN mismatch")
        self.assertEqual(self.db.query(AuditEvent).filter(AuditEvent.action == "kyb.rejected").count(), 1)

    def test_approve_without_banking_integration(self):
        merchant = self.create_merchant(kyb_status="in_progress")
        r = self.client.post(f"{API}/admin/kyb-review", json={"merchant_id": merchant.id, "action": "approve"},
                             headers=self.headers)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"success": True, "action": "approved"})

        self.db.expire_all()
        merchant = self.db.query(Merchant).one()
        self.assertEqual((merchant.kyb_status, merchant.status, merchant.can_ship), ("approved", "approved", True))

    def test_approve_creates_banking_customer(self):
        merchant = self.create_merchant(kyb_status="in_progress")
        client = MagicMock(enabled=True)
        client.create_customer = AsyncMock(return_value="cust_123")
        with patch("labsupply.routes.merchants.mercury_client", client):
            r = self.client.post(f"{API}/admin/kyb-review", json={"merchant_id": merchant.id, "action": "approve"},
                                 headers=self.headers)
        self.assertEqual(r.json()["mercury_customer_id"], "cust_123")
        client.create_customer.assert_awaited_once_with(name="Peptide Store", email="shop@peptidestore.io")

    def test_banking_failure_does_not_block_approval(self):
        merchant = self.create_merchant(kyb_status="in_progress")
        client = MagicMock(enabled=True)
        client.create_customer = AsyncMock(side_effect=RuntimeError("503 from bank"))
        with patch("labsupply.routes.merchants.mercury_client", client):
            r = self.client.post(f"{API}/admin/kyb-review", json={"merchant_id": merchant.id, "action": "approve"},
                                 headers=self.headers)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["action"], "approved")
        self.db.expire_all()
        self.assertIsNone(self.db.query(Merchant).one().mercury_customer_id)

    def test_unknown_merchant(self):
        r = self.client.post(f"{API}/admin/kyb-review", json={"merchant_id": 999, "action": "approve"}, headers=self.headers)
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json(), {"error": "Merchant not found"})
