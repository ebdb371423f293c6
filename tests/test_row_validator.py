"""Tests for per-row catalog validation and normalization."""

from decimal import Decimal
from unittest import TestCase

from labsupply.schemas.bulk_upload import CatalogRow
from labsupply.utils.row_validator import RowValidationError, validate_row


def _row(**overrides):
    row = {"sku": "BPC-157-5MG", "name": "BPC-157 5mg", "price_dollars": "24.99"}
    row.update(overrides)
    return row


class TestValidateRow(TestCase):
    def assertRejected(self, row, fragment, row_number=2):
        outcome = validate_row(row, row_number)
        self.assertIsInstance(outcome, RowValidationError)
        self.assertEqual(outcome.row_number, row_number)
        self.assertIn(fragment, outcome.message)
        return outcome

    def test_minimal_row_defaults(self):
        outcome = validate_row(_row(), 2)
        self.assertIsInstance(outcome, CatalogRow)
        self.assertEqual(outcome.price_dollars, Decimal("24.99"))
        self.assertEqual(outcome.price_cents, 2499)
        self.assertTrue(outcome.active)
        self.assertFalse(outcome.requires_coa)
        self.assertIsNone(outcome.initial_stock)
        self.assertIsNone(outcome.description)
        self.assertIsNone(outcome.tags)

    def test_full_template_row(self):
        outcome = validate_row(_row(
            description="Body Protection Compound", category="Peptides", initial_stock="100",
            low_stock_threshold="10", weight_grams="5", min_order_qty="1", max_order_qty="",
            active="true", requires_coa="false", tags="peptide;research",
        ), 2)
        self.assertEqual(outcome.category, "Peptides")
        self.assertEqual(outcome.initial_stock, 100)
        self.assertEqual(outcome.low_stock_threshold, 10)
        self.assertEqual(outcome.weight_grams, 5)
        self.assertEqual(outcome.min_order_qty, 1)
        self.assertIsNone(outcome.max_order_qty)
        self.assertEqual(outcome.tags, ["peptide", "research"])

    def test_sku_rules(self):
        self.assertRejected(_row(sku=""), "SKU is required")
        self.assertRejected(_row(sku="A" * 51), "50 characters or less")
        self.assertRejected(_row(sku="BAD SKU!"), "letters, numbers, hyphens, and underscores")

    def test_first_violation_wins(self):
        # Both SKU and name are bad; only the SKU is reported
        self.assertRejected(_row(sku="x y", name=""), "SKU can only contain")

    def test_name_rules(self):
        self.assertRejected(_row(name="  "), "Name is required")
        self.assertRejected(_row(name="n" * 256), "255 characters or less")

    def test_price_aliases(self):
        outcome = validate_row({"sku": "A", "name": "Alpha", "price_dollars": "", "cost": "3.5"}, 2)
        self.assertEqual(outcome.price_cents, 350)

    def test_price_rules(self):
        self.assertRejected(_row(price_dollars=""), "Price is required")
        outcome = self.assertRejected(_row(price_dollars="abc"), "must be a non-negative number")
        self.assertIn('"abc"', outcome.message)
        self.assertRejected(_row(price_dollars="-1"), "non-negative")
        self.assertRejected(_row(price_dollars="NaN"), "non-negative")
        self.assertRejected(_row(price_dollars="Infinity"), "non-negative")

    def test_price_rounds_half_up(self):
        self.assertEqual(validate_row(_row(price_dollars="0.005"), 2).price_cents, 1)
        self.assertEqual(validate_row(_row(price_dollars="0"), 2).price_cents, 0)

    def test_integer_fields_are_strict(self):
        self.assertRejected(_row(initial_stock="1.5"), 'Invalid initial stock "1.5"')
        self.assertRejected(_row(stock="12abc"), "Invalid initial stock")
        self.assertRejected(_row(initial_stock="-3"), "non-negative integer")
        self.assertRejected(_row(reorder_point="x"), "Invalid low stock threshold")
        self.assertRejected(_row(weight="0"), "positive integer (grams)")
        self.assertRejected(_row(min_order_qty="0"), "Invalid min order qty")
        self.assertRejected(_row(max_order_qty="0"), "Invalid max order qty")

    def test_stock_alias_and_zero(self):
        self.assertEqual(validate_row(_row(on_hand="0"), 2).initial_stock, 0)

    def test_active_tokens(self):
        for token in ("false", "0", "no", "INACTIVE"):
            self.assertFalse(validate_row(_row(active=token), 2).active, token)
        for token in ("true", "yes", "whatever"):
            self.assertTrue(validate_row(_row(active=token), 2).active, token)

    def test_requires_coa_tokens(self):
        for token in ("true", "1", "YES"):
            self.assertTrue(validate_row(_row(requires_coa=token), 2).requires_coa, token)
        self.assertFalse(validate_row(_row(requires_coa="maybe"), 2).requires_coa)

    def test_tags_drop_empties(self):
        self.assertEqual(validate_row(_row(tags=" a ; ;b;"), 2).tags, ["a", "b"])
        self.assertIsNone(validate_row(_row(tags=" ; "), 2).tags)

    def test_integers_beyond_column_range(self):
        outcome = self.assertRejected(_row(initial_stock="99999999999999999999"), 'Invalid initial stock "99999999999999999999"')
        self.assertIn("maximum is 2147483647", outcome.message)
        self.assertRejected(_row(weight_grams="2147483648"), "maximum is 2147483647")
        self.assertEqual(validate_row(_row(initial_stock="2147483647"), 2).initial_stock, 2147483647)

    def test_integer_with_thousands_of_digits(self):
        self.assertRejected(_row(initial_stock="9" * 5000), "maximum is 2147483647")
        self.assertRejected(_row(initial_stock="-" + "9" * 5000), "non-negative integer")

    def test_price_beyond_column_range(self):
        self.assertRejected(_row(price_dollars="1e30"), 'Invalid price "1e30": must be at most 21474836.47')
        self.assertRejected(_row(price_dollars="21474836.48"), "must be at most")
        self.assertEqual(validate_row(_row(price_dollars="21474836.47"), 2).price_cents, 2147483647)
