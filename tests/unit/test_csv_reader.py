"""
Unit Tests - Inventory CSV Reader
"""
import pytest
from structlog.testing import capture_logs

from stocksync.exceptions import CSVParseError
from stocksync.ingestion.csv_reader import read_inventory_csv
from stocksync.ingestion.ftp_client import parse_mdtm


class TestReadInventoryCsv:
    """Tests for read_inventory_csv"""

    def test_rows_keyed_by_header(self, sample_csv):
        rows = read_inventory_csv(sample_csv)

        assert len(rows) == 4
        assert rows[0]["Item number"] == "100"
        assert rows[0]["Leverandør"] == "Acme"
        assert rows[0]["Stock"] == "3"

    def test_all_values_read_as_strings(self, sample_csv):
        rows = read_inventory_csv(sample_csv)

        # Leading zeros and decimals survive untouched
        assert rows[0]["EAN"] == "5701234567890"
        assert rows[0]["Rec Retail"] == "299.95"

    def test_reads_from_path(self, tmp_path, sample_csv):
        path = tmp_path / "Inventory.csv"
        path.write_bytes(sample_csv)

        assert len(read_inventory_csv(path)) == 4

    def test_custom_delimiter(self):
        rows = read_inventory_csv(b"SKU,Item number\nA-1,100\n", delimiter=",")

        assert rows == [{"SKU": "A-1", "Item number": "100"}]

    def test_headers_trimmed_and_bom_removed(self):
        rows = read_inventory_csv("\ufeff SKU ; Item number \nA-1;100\n".encode("utf-8"))

        assert list(rows[0]) == ["SKU", "Item number"]

    def test_empty_input(self):
        assert read_inventory_csv(b"") == []

    def test_header_only(self, make_csv):
        assert read_inventory_csv(make_csv()) == []

    def test_blank_rows_dropped_and_logged(self):
        content = b"SKU;Item number\nA-1;100\n;\nA-2;101\n"

        with capture_logs() as logs:
            rows = read_inventory_csv(content)

        assert [row["SKU"] for row in rows] == ["A-1", "A-2"]
        warnings = [entry for entry in logs if entry["event"] == "Skipping blank CSV rows"]
        assert warnings and warnings[0]["lines"] == [3]

    def test_ragged_lines_truncated_and_logged(self):
        with capture_logs() as logs:
            rows = read_inventory_csv(b"SKU;Item number\nA-1;100;extra\nA-2\nA-3;102\n")

        assert rows == [
            {"SKU": "A-1", "Item number": "100"},
            {"SKU": "A-2", "Item number": None},
            {"SKU": "A-3", "Item number": "102"},
        ]
        warnings = [entry for entry in logs if entry["event"] == "Ragged CSV rows"]
        assert warnings[0]["lines"] == [2, 3]
        assert warnings[0]["count"] == 2

    def test_quoted_delimiter_is_not_ragged(self):
        with capture_logs() as logs:
            rows = read_inventory_csv(b'SKU;Product name\nA-1;"Shirt; blue"\n')

        assert rows == [{"SKU": "A-1", "Product name": "Shirt; blue"}]
        assert not [entry for entry in logs if entry["event"] == "Ragged CSV rows"]

    def test_invalid_bytes_replaced_and_logged(self):
        content = b"SKU;Item number;Product name\nA-1;100;Shirt\nA-2;101;Caf\xe9\n"

        with capture_logs() as logs:
            rows = read_inventory_csv(content, encoding="utf-8")

        assert [row["SKU"] for row in rows] == ["A-1", "A-2"]
        assert rows[0]["Product name"] == "Shirt"
        assert rows[1]["Product name"] == "Caf\ufffd"
        warnings = [entry for entry in logs if entry["event"] == "Replaced undecodable bytes in CSV rows"]
        assert warnings[0]["lines"] == [3]

    def test_latin1_feed(self):
        rows = read_inventory_csv("SKU;Product name\nA-1;Bl\u00e5 tr\u00f8je\n".encode("latin-1"), encoding="latin-1")

        assert rows[0]["Product name"] == "Bl\u00e5 tr\u00f8je"

    def test_unknown_encoding_raises(self):
        with pytest.raises(CSVParseError):
            read_inventory_csv(b"SKU\nA-1\n", encoding="no-such-codec")

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(CSVParseError):
            read_inventory_csv(tmp_path / "missing.csv")


class TestParseMdtm:
    """Tests for MDTM reply parsing"""

    def test_plain_timestamp(self):
        modified = parse_mdtm("213 20250115083000")

        assert modified.isoformat() == "2025-01-15T08:30:00+00:00"

    def test_fractional_seconds(self):
        assert parse_mdtm("213 20250115083000.123").second == 0

    def test_unexpected_reply(self):
        with pytest.raises(ValueError):
            parse_mdtm("550 Inventory.csv: No such file")
