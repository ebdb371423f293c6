"""Tests for the line-oriented CSV reader used by catalog imports."""

from unittest import TestCase

from labsupply.utils.csv_parser import normalize_header, parse_csv, parse_csv_line


class TestParseCsvLine(TestCase):
    def test_plain_fields_are_trimmed(self):
        self.assertEqual(parse_csv_line(" a , b,c "), ["a", "b", "c"])

    def test_comma_inside_quotes_does_not_split(self):
        self.assertEqual(parse_csv_line('SKU-1,"Vial, 5mg",9.99'), ["SKU-1", "Vial, 5mg", "9.99"])

    def test_doubled_quote_is_literal(self):
        self.assertEqual(parse_csv_line('"He said ""hi""",x'), ['He said "hi"', "x"])

    def test_empty_fields_are_kept(self):
        self.assertEqual(parse_csv_line("a,,c,"), ["a", "", "c", ""])

    def test_unterminated_quote_runs_to_end_of_line(self):
        self.assertEqual(parse_csv_line('a,"b,c'), ["a", "b,c"])


class TestParseCsv(TestCase):
    def test_headers_are_normalized(self):
        self.assertEqual(normalize_header("Price  Dollars"), "price_dollars")
        headers, _ = parse_csv("SKU,Initial Stock\nA,1\n")
        self.assertEqual(headers, ["sku", "initial_stock"])

    def test_rows_map_headers_to_values(self):
        headers, rows = parse_csv("sku,name,price_dollars\r\nA-1,Alpha,1.50\r\nB-2,Beta,2\r\n")
        self.assertEqual(headers, ["sku", "name", "price_dollars"])
        self.assertEqual(rows, [
            {"sku": "A-1", "name": "Alpha", "price_dollars": "1.50"},
            {"sku": "B-2", "name": "Beta", "price_dollars": "2"},
        ])

    def test_missing_trailing_fields_are_empty_and_extras_ignored(self):
        _, rows = parse_csv("sku,name,price\nA,Alpha\nB,Beta,3,extra\n")
        self.assertEqual(rows[0], {"sku": "A", "name": "Alpha", "price": ""})
        self.assertEqual(rows[1], {"sku": "B", "name": "Beta", "price": "3"})

    def test_blank_lines_are_dropped(self):
        _, rows = parse_csv("sku,name\n\nA,Alpha\n   \nB,Beta\n\n")
        self.assertEqual([r["sku"] for r in rows], ["A", "B"])

    def test_header_only_or_empty_document(self):
        self.assertEqual(parse_csv(""), ([], []))
        self.assertEqual(parse_csv("sku,name\n"), ([], []))
        self.assertEqual(parse_csv("\n\n"), ([], []))
