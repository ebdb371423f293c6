"""Tests for audit writing helpers and the audit log endpoint."""

from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from labsupply.models.audit import AuditEvent
from labsupply.utils.audit import write_audit, write_audit_best_effort

from portal_base import API, PortalTestCase

URL = f"{API}/admin/audit"


class TestAuditHelpers(PortalTestCase):
    def test_write_audit_stores_string_entity_id(self):
        admin = self.create_admin()
        entry = write_audit(self.db, action="inventory.adjusted", entity_type="product", entity_id=42,
                            actor_id=admin.id, meta={"reason": "count"})
        self.assertEqual(entry.entity_id, "42")
        self.assertEqual(entry.status, "SUCCESS")
        self.assertEqual(self.db.query(AuditEvent).count(), 1)

    def test_best_effort_swallows_database_errors(self):
        with patch("labsupply.utils.audit.write_audit", side_effect=SQLAlchemyError("no such table")):
            with self.assertLogs("labsupply.utils.audit", level="WARNING") as logs:
                stored = write_audit_best_effort(self.db, action="admin.login")
        self.assertFalse(stored)
        self.assertIn("admin.login", logs.output[0])

    def test_best_effort_reports_success(self):
        self.assertTrue(write_audit_best_effort(self.db, action="admin.login", status="FAIL"))

    def test_best_effort_does_not_hide_programming_errors(self):
        with self.assertRaises(TypeError):
            write_audit_best_effort(self.db, action="x", unknown_field=1)


class TestAuditLogRoute(PortalTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.create_admin()
        self.headers = self.admin_headers(self.admin)
        for action, status in (("admin.login", "SUCCESS"), ("admin.login", "FAIL"), ("inventory.bulk_upload", "SUCCESS")):
            write_audit(self.db, action=action, status=status, actor_id=self.admin.id)

    def test_newest_first(self):
        body = self.client.get(URL, headers=self.headers).json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(body["items"][0]["action"], "inventory.bulk_upload")

    def test_filters(self):
        body = self.client.get(URL, params={"action": "login", "status": "fail"}, headers=self.headers).json()
        self.assertEqual(body["total"], 1)
        self.assertEqual(body["items"][0]["status"], "FAIL")

        body = self.client.get(URL, params={"actor_id": self.admin.id, "page_size": 2}, headers=self.headers).json()
        self.assertEqual((body["total"], len(body["items"])), (3, 2))

    def test_malformed_dates_are_ignored(self):
        body = self.client.get(URL, params={"date_from": "yesterday"}, headers=self.headers).json()
        self.assertEqual(body["total"], 3)

    def test_requires_admin(self):
        self.assertEqual(self.client.get(URL).status_code, 401)
