"""Tests for the admin CSV bulk upload endpoint and its template."""

from unittest.mock import patch

from labsupply.models.product import Product
from labsupply.utils import bulk_import

from portal_base import API, PortalTestCase

URL = f"{API}/admin/inventory/bulk-upload"
TEMPLATE = (
    "sku,name,price_dollars,description,category,initial_stock,low_stock_threshold,"
    "weight_grams,min_order_qty,max_order_qty,active,requires_coa,tags\n"
    "BPC-157-5MG,BPC-157 5mg,24.99,Body Protection Compound,Peptides,100,10,5,1,,true,false,peptide;research\n"
)


class TestBulkUploadRoute(PortalTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.create_admin()
        self.headers = self.admin_headers(self.admin)

    def _upload(self, content, filename="catalog.csv", content_type="text/csv"):
        if isinstance(content, str):
            content = content.encode("utf-8")
        return self.client.post(URL, files={"file": (filename, content, content_type)}, headers=self.headers)

    def test_template_row_is_imported(self):
        r = self._upload(TEMPLATE)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {
            "summary": {"total": 1, "created": 1, "failed": 0},
            "results": [{"row": 2, "sku": "BPC-157-5MG", "success": True}],
        })

        self.db.expire_all()
        product = self.db.query(Product).filter(Product.sku == "BPC-157-5MG").one()
        self.assertEqual(product.cost_cents, 2499)
        self.assertEqual(product.weight_grams, 5)
        self.assertEqual(product.tags, ["peptide", "research"])
        self.assertTrue(product.active)
        self.assertFalse(product.requires_coa)

    def test_invalid_sku_row_is_reported(self):
        r = self._upload("sku,name,price_dollars\nBAD SKU!,Widget,9.99\n")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["summary"], {"total": 1, "created": 0, "failed": 1})
        result = body["results"][0]
        self.assertEqual((result["row"], result["sku"], result["success"]), (2, "BAD SKU!", False))
        self.assertIn("letters, numbers, hyphens", result["error"])

    def test_utf8_bom_is_accepted(self):
        r = self._upload("\ufeffsku,name,price\nA-1,Alpha,1\n".encode("utf-8"))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["summary"]["created"], 1)

    def test_csv_content_type_without_extension(self):
        r = self._upload("sku,name,price\nA-1,Alpha,1\n", filename="export", content_type="text/csv")
        self.assertEqual(r.status_code, 200)

    def test_requires_admin(self):
        r = self.client.post(URL, files={"file": ("catalog.csv", b"sku,name\nA,B\n", "text/csv")})
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.json(), {"error": "Unauthorized. Admin authentication required."})

    def test_inactive_admin_is_rejected(self):
        inactive = self.create_admin(email="former@labsupply.io", is_active=False)
        r = self.client.post(
            URL, files={"file": ("catalog.csv", b"sku,name\nA,B\n", "text/csv")},
            headers=self.admin_headers(inactive),
        )
        self.assertEqual(r.status_code, 401)

    def test_merchant_token_is_not_an_admin_token(self):
        merchant = self.create_merchant()
        r = self.client.post(
            URL, files={"file": ("catalog.csv", b"sku,name\nA,B\n", "text/csv")},
            headers=self.merchant_headers(merchant),
        )
        self.assertEqual(r.status_code, 401)

    def test_missing_file(self):
        r = self.client.post(URL, headers=self.headers)
        self.assertEqual(r.status_code, 400)
        self.assertIn("No CSV file provided", r.json()["error"])

    def test_wrong_file_type(self):
        r = self._upload("sku,name\nA,B\n", filename="catalog.xlsx", content_type="application/vnd.ms-excel")
        self.assertEqual(r.status_code, 400)
        self.assertIn("must be a CSV file", r.json()["error"])

    def test_non_utf8_file(self):
        r = self._upload(b"sku,name\nA,Caf\xe9\n")
        self.assertEqual(r.status_code, 400)
        self.assertIn("UTF-8", r.json()["error"])

    def test_header_only_file(self):
        r = self._upload("sku,name,price_dollars\n")
        self.assertEqual(r.status_code, 400)
        self.assertIn("empty or has no data rows", r.json()["error"])

    def test_missing_required_column(self):
        r = self._upload("sku,price_dollars\nA,1\n")
        self.assertEqual(r.status_code, 400)
        self.assertIn("Found columns: sku, price_dollars", r.json()["error"])

    def test_too_many_rows(self):
        lines = ["sku,name,price"] + [f"SKU-{i},Item {i},1" for i in range(501)]
        r = self._upload("\n".join(lines))
        self.assertEqual(r.status_code, 400)
        self.assertIn("501 rows, but the maximum is 500", r.json()["error"])
        self.assertEqual(self.db.query(Product).count(), 0)

    def test_oversized_number_is_a_row_error(self):
        r = self._upload("sku,name,price,initial_stock\nA,Alpha,1,\nB,Beta,1e30,\nC,Gamma,2,99999999999999999999\nD,Delta,2,\n")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["summary"], {"total": 4, "created": 2, "failed": 2})
        self.assertEqual([res["sku"] for res in body["results"] if not res["success"]], ["B", "C"])

    def test_unexpected_failure_before_any_save(self):
        with patch.object(bulk_import, "upsert_catalog_row", side_effect=RuntimeError("boom")):
            r = self._upload("sku,name,price\nA,Alpha,1\n")
        self.assertEqual(r.status_code, 500)
        self.assertIn("No products were created", r.json()["error"])

    def test_unexpected_failure_reports_saved_products(self):
        real_upsert = bulk_import.upsert_catalog_row

        def exploding_upsert(db, row):
            if row.sku == "B":
                raise RuntimeError("boom")
            return real_upsert(db, row)

        with patch.object(bulk_import, "upsert_catalog_row", side_effect=exploding_upsert):
            r = self._upload("sku,name,price\nA,Alpha,1\nB,Beta,2\n")
        self.assertEqual(r.status_code, 500)
        self.assertIn("after 1 product(s) were saved", r.json()["error"])
        self.db.expire_all()
        self.assertEqual([p.sku for p in self.db.query(Product).all()], ["A"])

    def test_template_download(self):
        r = self.client.get(f"{URL}/template", headers=self.headers)
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.headers["content-type"].startswith("text/csv"))
        self.assertIn("inventory-template.csv", r.headers["content-disposition"])
        self.assertEqual(r.text, TEMPLATE)
