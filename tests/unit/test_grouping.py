"""
Unit Tests - Records and Product Grouping
"""
from structlog.testing import capture_logs

from stocksync.ingestion.csv_reader import read_inventory_csv
from stocksync.transformation.grouping import build_article, group_rows
from stocksync.transformation.records import UNKNOWN_SUPPLIER, ColumnMap, parse_int


def row(**values):
    base = {"Item number": "100", "Product name": "Shirt", "SKU": "SKU-1", "Size": "M", "Stock": "1"}
    base.update(values)
    return base


class TestParseInt:
    """Tests for leading-integer parsing of stock counters"""

    def test_plain(self):
        assert parse_int("12") == 12

    def test_leading_digits(self):
        assert parse_int(" 7 pcs") == 7
        assert parse_int("3.9") == 3

    def test_negative(self):
        assert parse_int("-2") == -2

    def test_unparseable_is_zero(self):
        assert parse_int("n/a") == 0
        assert parse_int("") == 0
        assert parse_int(None) == 0

    def test_bool_is_zero(self):
        assert parse_int(True) == 0


class TestColumnMap:
    """Tests for header resolution"""

    def test_case_insensitive_trimmed_headers(self):
        column_map = ColumnMap.from_headers([" item NUMBER ", "sku", "Stock"])

        assert column_map.columns["item_number"] == " item NUMBER "
        assert column_map.columns["sku"] == "sku"

    def test_supplier_first_non_empty_alias(self):
        column_map = ColumnMap.from_headers(["Leverandør", "Supplier"])

        assert column_map.resolve_supplier({"Leverandør": "  ", "Supplier": "Acme"}) == "Acme"
        assert column_map.resolve_supplier({"Leverandør": "Nordic", "Supplier": "Acme"}) == "Nordic"

    def test_supplier_defaults_to_unknown(self):
        column_map = ColumnMap.from_headers(["SKU"])

        assert column_map.resolve_supplier({"SKU": "A"}) == UNKNOWN_SUPPLIER

    def test_configured_supplier_columns(self):
        column_map = ColumnMap.from_headers(["Vendor name"], supplier_aliases=["Vendor name"])

        assert column_map.resolve_supplier({"Vendor name": "Acme"}) == "Acme"

    def test_missing_fields_reported(self):
        column_map = ColumnMap.from_headers(["SKU", "Item number"])

        assert "stock" in column_map.missing_fields
        assert "sku" not in column_map.missing_fields


class TestBuildArticle:
    """Tests for build_article"""

    def test_values_trimmed_and_empty_cells_dropped(self):
        column_map = ColumnMap.from_headers(row().keys() | {"Color"})
        article = build_article(row(Size=" M ", Color=""), column_map)

        assert article.size == "M"
        assert article.color is None
        assert "color" not in article.to_document()

    def test_camel_case_document(self):
        column_map = ColumnMap.from_headers(list(row(**{"In Purchase": "2"}).keys()))
        document = build_article(row(**{"In Purchase": "2"}), column_map).to_document()

        assert document["itemNumber"] == "100"
        assert document["inPurchase"] == "2"
        assert document["isActive"] is True

    def test_missing_sku_is_dropped(self):
        column_map = ColumnMap.from_headers(row().keys())

        assert build_article(row(SKU="  "), column_map) is None
        assert build_article(row(**{"Item number": None}), column_map) is None

    def test_inaktiv_marker(self):
        column_map = ColumnMap.from_headers(list(row(Inaktiv="X").keys()))

        assert build_article(row(Inaktiv="X"), column_map).is_active is False
        assert build_article(row(Inaktiv=""), column_map).is_active is True


class TestGroupRows:
    """Tests for group_rows"""

    def test_shirt_example(self):
        rows = [
            {"Item number": "100", "Product name": "Shirt", "Leverandør": "Acme", "Size": "M", "Stock": "3", "SKU": "A"},
            {"Item number": "100", "Product name": "Shirt", "Leverandør": "Acme", "Size": "L", "Stock": "5", "SKU": "B"},
        ]

        groups = group_rows(rows)

        assert list(groups) == [("100", "Shirt", "Acme")]
        product = groups[("100", "Shirt", "Acme")]
        assert product.total_stock == 8
        assert product.sizes_display == "M, L"
        assert len(product.items) == 2

        document = product.to_document()
        assert document["sizes"] == "M, L"
        assert document["sizesArray"] == ["M", "L"]
        assert document["totalStock"] == 8
        assert document["leverandor"] == "Acme"

    def test_same_item_number_different_supplier(self):
        rows = [
            row(SKU="A", **{"Leverandør": "Acme"}),
            row(SKU="B", **{"Leverandør": "Nordic"}),
        ]

        assert len(group_rows(rows)) == 2

    def test_unparseable_stock_counts_zero(self):
        groups = group_rows([row(SKU="A", Stock="3"), row(SKU="B", Stock="n/a")])

        assert next(iter(groups.values())).total_stock == 3

    def test_duplicate_sizes_listed_once(self):
        groups = group_rows([row(SKU="A", Color="Blue"), row(SKU="B", Color="Red")])

        assert next(iter(groups.values())).sizes == ["M"]

    def test_rows_without_key_in_no_aggregate(self):
        groups = group_rows([row(SKU="A"), row(SKU=""), row(**{"SKU": "C", "Item number": ""})])

        product = next(iter(groups.values()))
        assert [article.sku for article in product.items] == ["A"]

    def test_summary_logged(self, sample_csv):
        with capture_logs() as logs:
            groups = group_rows(read_inventory_csv(sample_csv))

        assert len(groups) == 2
        summary = [entry for entry in logs if entry["event"] == "Grouped feed rows into products"]
        assert summary[0]["rows_without_key"] == 1

    def test_unreadable_row_logged_and_skipped(self):
        column_map = ColumnMap.from_headers(row().keys())
        rows = [row(SKU="A"), ["100", "Shirt", "B"], row(SKU="C", Size="L")]

        with capture_logs() as logs:
            groups = group_rows(rows, column_map)

        product = groups[("100", "Shirt", UNKNOWN_SUPPLIER)]
        assert [article.sku for article in product.items] == ["A", "C"]
        errors = [entry for entry in logs if entry["event"] == "Skipping unreadable row"]
        assert errors[0]["line"] == 3
        summary = [entry for entry in logs if entry["event"] == "Grouped feed rows into products"]
        assert summary[0]["rows_failed"] == 1
