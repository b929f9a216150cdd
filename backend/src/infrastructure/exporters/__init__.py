"""Report exporters (CSV, Excel)."""

from .csv_exporter import write_csv
from .excel_exporter import write_xlsx

__all__ = ["write_csv", "write_xlsx"]
