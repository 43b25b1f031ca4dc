"""Tests for the delimited-text parser."""

from __future__ import annotations

from datetime import date

import pytest

from claimsalytics.errors import MissingColumnError
from claimsalytics.io.delimited import (
    detect_delimiter,
    parse_delimited_text,
    resolve_columns,
    tokenize,
)
from claimsalytics.schema import CodeClass


class TestDetectDelimiter:
    def test_comma_default(self) -> None:
        assert detect_delimiter("cpt,units\n1,2") == ","

    def test_tab_on_first_non_blank_line(self) -> None:
        assert detect_delimiter("\n  \ncpt\tunits\n1,2") == "\t"

    def test_tab_later_is_ignored(self) -> None:
        assert detect_delimiter("cpt,units\n1\t2") == ","


class TestTokenize:
    def test_quotes_and_escapes(self) -> None:
        rows = tokenize('a,"b,c","d""e"\r\n1,2,3', ",")
        assert rows == [["a", "b,c", 'd"e'], ["1", "2", "3"]]

    def test_newline_inside_quotes_is_literal(self) -> None:
        rows = tokenize('"line1\nline2",x\n', ",")
        assert rows == [["line1\nline2", "x"]]

    def test_carriage_return_kept_inside_quotes(self) -> None:
        assert tokenize('"a\r\nb"', ",") == [["a\r\nb"]]

    def test_tab_delimiter(self) -> None:
        assert tokenize("a\tb,c\n", "\t") == [["a", "b,c"]]

    def test_trailing_empty_field(self) -> None:
        assert tokenize("a,\n", ",") == [["a", ""]]


class TestResolveColumns:
    def test_first_candidate_wins(self) -> None:
        columns = resolve_columns(["Patient", "Patient_Name", "CPT"])
        assert columns["patient_name"] == 1
        assert columns["procedure_code"] == 2

    def test_header_cells_trimmed_and_lowercased(self) -> None:
        assert resolve_columns(["  Proc Code "])["procedure_code"] == 0

    def test_absent_columns_left_out(self) -> None:
        assert "payer" not in resolve_columns(["cpt"])


class TestParseDelimitedText:
    def test_end_to_end_row(self) -> None:
        text = (
            "cpt,units,charges,insurance_payment,patient_id,payer,date_of_service\n"
            "A1000,2,100.00,80.00,P1,Aetna,2024-01-15\n"
        )
        claims = parse_delimited_text(text, "")
        assert len(claims) == 1
        claim = claims[0]
        assert claim.claim_id == 1
        assert claim.procedure_code == "A1000"
        assert claim.code_class == CodeClass.AQL
        assert claim.units == 2
        assert claim.charge == 100.00
        assert claim.paid == 80.00
        assert claim.is_paid is True
        assert claim.payer == "Aetna"
        assert claim.service_date == date(2024, 1, 15)

    def test_sample_file(self, sample_csv_text: str) -> None:
        claims = parse_delimited_text(sample_csv_text, "Dr. Fallback")
        assert [c.claim_id for c in claims] == [1, 2, 3]
        assert [c.procedure_code for c in claims] == ["99213", "A4550", "99214"]

        first, second, third = claims
        assert first.patient_name == "Doe, Jane"
        assert first.provider == "Dr. Adams"

        assert second.paid == 20.0
        assert second.payer == "UnitedHealthcare"
        assert second.provider == "Dr. Fallback"
        assert second.service_date == date(2024, 1, 15)

        assert third.units == 0
        assert third.paid == 0
        assert third.is_paid is False
        assert third.patient_name == "Unknown Patient"
        assert third.payer == "Unknown Payer"
        assert third.service_date is None

    def test_provider_defaults_to_unknown(self) -> None:
        claims = parse_delimited_text("cpt\n99213\n")
        assert claims[0].provider == "Unknown Provider"
        assert claims[0].patient_id == "Unknown ID"

    def test_tab_separated(self) -> None:
        text = "Procedure Code\tQty\tPaid\n99213\t3\t$90.00\n"
        claims = parse_delimited_text(text)
        assert claims[0].units == 3
        assert claims[0].paid == 90.0

    def test_short_rows_use_defaults(self) -> None:
        claims = parse_delimited_text("cpt,units,paid\n99213\n")
        assert claims[0].units == 0
        assert claims[0].paid == 0

    def test_missing_cpt_column_is_hard_error(self) -> None:
        with pytest.raises(MissingColumnError, match="CPT"):
            parse_delimited_text("code,units\n99213,1\n")

    def test_missing_cpt_column_without_rows(self) -> None:
        with pytest.raises(MissingColumnError):
            parse_delimited_text("code,units\n")

    def test_empty_text(self) -> None:
        assert parse_delimited_text("") == []
        assert parse_delimited_text("\n\n") == []

    def test_header_only(self) -> None:
        assert parse_delimited_text("cpt,units\n") == []

    def test_leading_blank_lines(self) -> None:
        claims = parse_delimited_text("\n\ncpt,paid\n99213,10\n")
        assert len(claims) == 1
