"""Tests for the seed script."""

import tempfile
from pathlib import Path
from unittest.mock import patch

from labsupply import populate_db
from labsupply.models.admin_user import AdminUser
from labsupply.models.product import Product

from portal_base import PortalTestCase


class TestPopulateDb(PortalTestCase):
    def _csv(self, text):
        handle = tempfile.NamedTemporaryFile("w", suffix=".csv", delete=False, encoding="utf-8")
        handle.write(text)
        handle.close()
        self.addCleanup(Path(handle.name).unlink)
        return handle.name

    def test_imports_catalog_and_bootstraps_admin(self):
        path = self._csv("sku,name,price_dollars,initial_stock\nbpc-157,BPC-157,24.99,10\n,Broken,1,\n")
        with patch.object(populate_db.settings, "BOOTSTRAP_ADMIN_EMAIL", "root@labsupply.io"), \
                patch.object(populate_db.settings, "BOOTSTRAP_ADMIN_PASSWORD", "Bootstrap123"):
            self.assertEqual(populate_db.main([path]), 0)

        self.db.expire_all()
        self.assertEqual([p.sku for p in self.db.query(Product).all()], ["BPC-157"])
        self.assertEqual(self.db.query(AdminUser).one().role, "super_admin")

    def test_rejected_file_exits_non_zero(self):
        path = self._csv("sku,price\nA,1\n")
        self.assertEqual(populate_db.main([path]), 1)
        self.assertEqual(populate_db.main(["/nonexistent/catalog.csv"]), 1)
