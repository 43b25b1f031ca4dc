"""Parsers turning billing exports into normalized claim records."""

from claimsalytics.io.delimited import parse_delimited_text
from claimsalytics.io.report import parse_report_grid
from claimsalytics.io.spreadsheet import read_first_sheet

__all__ = ["parse_delimited_text", "parse_report_grid", "read_first_sheet"]
