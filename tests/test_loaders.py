import io
import sys
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pandas as pd
from openpyxl import Workbook

from captain_dashboard.loaders import LoadResult, load_shipments, parse_shipment_rows
from captain_dashboard.loaders.utils import is_blank, normalise_date, safe_float, to_snake_case

TODAY = pd.Timestamp("2024-06-30")

HEADERS = [
    "Company Name",
    "Package Code",
    "Date",
    "# Shipments",
    "Package Fare",
    "Delivered",
    "Failed Shipments",
    "Captain",
]


class NormaliseDateTests(unittest.TestCase):
    def test_supported_formats(self) -> None:
        march_5 = pd.Timestamp("2024-03-05")
        self.assertEqual(normalise_date("2024-03-05"), march_5)
        self.assertEqual(normalise_date("3/5/2024"), march_5)
        self.assertEqual(normalise_date("05-03-2024"), march_5)
        self.assertEqual(normalise_date("2024-03-05T10:30:00"), march_5)
        self.assertEqual(normalise_date(datetime(2024, 3, 5, 17, 0)), march_5)
        self.assertEqual(normalise_date(45356), march_5)

    def test_unparseable_falls_back_to_default(self) -> None:
        with self.assertLogs("captain_dashboard.loaders.utils", level="WARNING"):
            self.assertEqual(normalise_date("next tuesday", default=TODAY), TODAY)
        self.assertEqual(normalise_date(None, default=TODAY), TODAY)
        self.assertEqual(normalise_date("  ", default=TODAY), TODAY)
        self.assertIsNone(normalise_date(float("nan")))


class CoercionTests(unittest.TestCase):
    def test_to_snake_case(self) -> None:
        self.assertEqual(to_snake_case("Company Name"), "company_name")
        self.assertEqual(to_snake_case("companyName"), "company_name")
        self.assertEqual(to_snake_case("# Shipments"), "shipments")
        self.assertEqual(to_snake_case("deliveredShipments"), "delivered_shipments")

    def test_safe_float(self) -> None:
        self.assertEqual(safe_float("1,234.5"), 1234.5)
        self.assertEqual(safe_float(7), 7.0)
        self.assertIsNone(safe_float("n/a"))
        self.assertIsNone(safe_float(float("nan")))
        self.assertIsNone(safe_float("=SUM(A1:A3)"))
        self.assertIsNone(safe_float("nan"))
        self.assertIsNone(safe_float("inf"))
        self.assertIsNone(safe_float("1e400"))
        self.assertIsNone(safe_float(float("-inf")))

    def test_is_blank(self) -> None:
        self.assertTrue(is_blank(None))
        self.assertTrue(is_blank("   "))
        self.assertTrue(is_blank(float("nan")))
        self.assertFalse(is_blank(0))


class ParseShipmentRowsTests(unittest.TestCase):
    def test_aliases_defaults_and_drops(self) -> None:
        raw = pd.DataFrame(
            [
                ["Aramco", "PKG-001", "2024-03-05", 10, 5.0, 8, 2, "Ahmed"],
                [None, "PKG-002", "2024-03-06", 5, 5.0, 5, 0, "Omar"],
                ["STC", "PKG-003", "garbage", "n/a", "4.5", 3, 1, None],
            ],
            columns=HEADERS,
        )
        records, dropped = parse_shipment_rows(raw, today=TODAY)

        self.assertEqual(dropped, 1)
        self.assertEqual(len(records), 2)
        self.assertEqual(records["id"].tolist(), ["excel-0", "excel-2"])

        first, second = records.iloc[0], records.iloc[1]
        self.assertEqual(first["company_name"], "Aramco")
        self.assertEqual(first["shipments"], 10)
        self.assertEqual(first["delivered_shipments"], 8)
        self.assertEqual(first["date"], pd.Timestamp("2024-03-05"))

        self.assertEqual(second["captain"], "Unknown")
        self.assertEqual(second["shipments"], 0)
        self.assertEqual(second["package_fare"], 4.5)
        self.assertEqual(second["date"], TODAY)

    def test_camel_case_headers(self) -> None:
        raw = pd.DataFrame([{
            "id": "abc",
            "companyName": "SABIC",
            "packageCode": "PKG-004",
            "date": "2024-01-02",
            "shipments": 20,
            "packageFare": 10,
            "deliveredShipments": 18,
            "failedShipments": 2,
            "captain": "Saad",
        }])
        records, dropped = parse_shipment_rows(raw, today=TODAY)
        self.assertEqual(dropped, 0)
        self.assertEqual(records.iloc[0]["id"], "abc")
        self.assertEqual(records.iloc[0]["company_name"], "SABIC")

    def test_non_finite_cells_count_as_zero(self) -> None:
        raw = pd.DataFrame(
            [
                ["Aramco", "PKG-001", "2024-03-05", "nan", "inf", "1e400", 2, "Ahmed"],
                ["STC", "PKG-002", "2024-03-06", float("inf"), 5.0, float("nan"), 1, "Omar"],
            ],
            columns=HEADERS,
        )
        records, dropped = parse_shipment_rows(raw, today=TODAY)

        self.assertEqual(dropped, 0)
        self.assertEqual(records["shipments"].tolist(), [0, 0])
        self.assertEqual(records["delivered_shipments"].tolist(), [0, 0])
        self.assertEqual(records["failed_shipments"].tolist(), [2, 1])
        self.assertEqual(records.iloc[0]["package_fare"], 0.0)

    def test_empty_sheet(self) -> None:
        records, dropped = parse_shipment_rows(pd.DataFrame(), today=TODAY)
        self.assertTrue(records.empty)
        self.assertEqual(dropped, 0)


class LoadShipmentsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_xlsx_first_sheet(self) -> None:
        wb = Workbook()
        ws = wb.active
        ws.append(HEADERS)
        ws.append(["Aramco", "PKG-001", datetime(2024, 3, 5), 10, 5.0, 8, 2, "Ahmed"])
        ws.append(["STC", "PKG-002", datetime(2024, 3, 6), 20, 4.0, 15, 5, "Omar"])
        ws.append([None, "PKG-002", datetime(2024, 3, 7), 20, 4.0, 15, 5, "Omar"])
        path = self.tmp / "shipments.xlsx"
        wb.save(path)

        result = load_shipments(path, today=TODAY)

        self.assertIsInstance(result, LoadResult)
        self.assertTrue(result.ok)
        self.assertEqual(result.dropped, 1)
        self.assertEqual(result.source, "shipments.xlsx")
        self.assertEqual(result.records["shipments"].sum(), 30)
        self.assertEqual(result.records.iloc[1]["date"], pd.Timestamp("2024-03-06"))
        self.assertIn("Loaded 2 records", result.message)

    def test_csv_upload_buffer(self) -> None:
        raw = pd.DataFrame(
            [["Aramco", "PKG-001", "3/5/2024", 10, 5.0, 8, 2, "Ahmed"]],
            columns=HEADERS,
        )
        buffer = io.BytesIO(raw.to_csv(index=False).encode("utf-8"))

        result = load_shipments(buffer, name="upload.csv", today=TODAY)

        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.records.iloc[0]["date"], pd.Timestamp("2024-03-05"))

    def test_csv_with_infinite_cell(self) -> None:
        text = (
            "Company Name,Captain,Date,# Shipments,Delivered\n"
            "STC,Ahmed,2024-03-05,inf,8\n"
            "STC,Omar,2024-03-06,12,9\n"
        )
        result = load_shipments(io.BytesIO(text.encode("utf-8")), name="upload.csv", today=TODAY)

        self.assertTrue(result.ok)
        self.assertEqual(result.records["shipments"].tolist(), [0, 12])
        self.assertEqual(result.records["delivered_shipments"].tolist(), [8, 9])

    def test_no_valid_rows(self) -> None:
        path = self.tmp / "empty.csv"
        pd.DataFrame({"Captain": ["Ahmed"], "Company Name": [None]}).to_csv(path, index=False)

        result = load_shipments(path, today=TODAY)

        self.assertFalse(result.ok)
        self.assertIn("No valid data", result.message)

    def test_unsupported_suffix(self) -> None:
        with self.assertRaises(ValueError):
            load_shipments(self.tmp / "shipments.json")

    def test_missing_file_is_logged_and_raised(self) -> None:
        with self.assertLogs("captain_dashboard.loaders.shipments", level="ERROR"):
            with self.assertRaises(FileNotFoundError):
                load_shipments(self.tmp / "missing.xlsx")


if __name__ == "__main__":
    unittest.main()
