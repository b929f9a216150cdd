"""Unit tests for CSV and Excel report exporters"""

import csv

import openpyxl
import pytest

from domain.reports.lottery import LOTTERY_COLUMNS, LotteryRow
from domain.reports.shipping import SHIPPING_COLUMNS, ShippingRow
from infrastructure.exporters import write_csv, write_xlsx

URL = "https://member.kms.kuronekoyamato.co.jp/parcel/detail?pno=123456789012"


@pytest.fixture
def shipping_rows():
    return [
        ShippingRow(
            date="Sun, 01 Jun 2025 20:00:00 +0900",
            to="a@example.com",
            waybill_no="1234-5678-9012",
            product_name="ポケモンカードゲーム BOX",
            price="5,400",
            address="山田 太郎 様 〒100-0001 東京都",
            tracking_url=URL,
        ),
        ShippingRow(date="", to="b@example.com"),
    ]


class TestCsvExporter:

    def test_header_and_rows(self, tmp_path):
        path = tmp_path / "lottery.csv"
        count = write_csv(str(path), LOTTERY_COLUMNS, [LotteryRow("a@example.com", "o")])
        assert count == 1
        with open(path, encoding="utf-8", newline="") as f:
            assert list(csv.reader(f)) == [["mail", "result"], ["a@example.com", "o"]]

    def test_custom_delimiter_and_dict_rows(self, tmp_path):
        path = tmp_path / "out" / "lottery.tsv"
        write_csv(str(path), LOTTERY_COLUMNS, [{"mail": "a@example.com", "result": "x"}], delimiter="\t")
        assert path.read_text(encoding="utf-8").splitlines() == ["mail\tresult", "a@example.com\tx"]

    def test_quotes_values_containing_delimiter(self, tmp_path, shipping_rows):
        path = tmp_path / "shipping.csv"
        write_csv(str(path), SHIPPING_COLUMNS, shipping_rows)
        with open(path, encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0][0] == "Date"
        assert rows[1][0] == "Sun, 01 Jun 2025 20:00:00 +0900"
        assert rows[1][4] == "5,400"

    def test_rejects_multi_char_delimiter(self, tmp_path):
        with pytest.raises(ValueError):
            write_csv(str(tmp_path / "x.csv"), LOTTERY_COLUMNS, [], delimiter=";;")


class TestExcelExporter:

    def test_sheet_layout(self, tmp_path, shipping_rows):
        path = tmp_path / "shipping.xlsx"
        count = write_xlsx(
            str(path),
            SHIPPING_COLUMNS,
            shipping_rows,
            sheet_title="shipping",
            hyperlink_keys=("tracking_url",),
            wrap_keys=("address",),
        )
        assert count == 2

        wb = openpyxl.load_workbook(path)
        ws = wb.active
        assert ws.title == "shipping"
        assert [c.value for c in ws[1]] == [header for header, _, _ in SHIPPING_COLUMNS]
        assert ws["A1"].font.bold
        assert ws.freeze_panes == "A2"
        assert ws.auto_filter.ref == "A1:G1"
        assert ws.column_dimensions["D"].width == 70

    def test_hyperlink_and_wrap_columns(self, tmp_path, shipping_rows):
        path = tmp_path / "shipping.xlsx"
        write_xlsx(
            str(path),
            SHIPPING_COLUMNS,
            shipping_rows,
            hyperlink_keys=("tracking_url",),
            wrap_keys=("address",),
        )
        ws = openpyxl.load_workbook(path).active
        assert ws["G2"].hyperlink.target == URL
        assert ws["F2"].alignment.wrap_text
        # Empty values are not turned into links
        assert ws["G3"].hyperlink is None
