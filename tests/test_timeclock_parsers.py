"""Time-clock format adapter tests — generic delimited and fixed-width AFD."""

from __future__ import annotations

from datetime import date

from hr_compliance.common.constants import PunchType, TimeclockSystem
from hr_compliance.timeclock.parsers import (
    decode_export,
    parse_dimep_afd,
    parse_generic,
    parse_timeclock_file,
    parse_timeclock_report,
)


def _afd_line(day: str, hhmm: str, tax_id: str, nsr: str = "000000001") -> str:
    # type digit + 9-char NSR, DDMMYYYY, HHMM, 1 filler, 11-digit tax id
    return f"3{nsr}{day}{hhmm}0{tax_id}"


# ═════════════════════════════════════════════════════════════════════
# Generic delimited
# ═════════════════════════════════════════════════════════════════════


class TestGenericParser:

    def test_semicolon_line_with_alternating_punches(self):
        records, issues = parse_generic("123.456.789-00;15/01/2024;08:00;12:00;13:00;17:00")

        assert issues == []
        assert len(records) == 1
        record = records[0]
        assert record.employee_tax_id == "12345678900"
        assert record.date == date(2024, 1, 15)
        assert [p.time for p in record.punches] == ["08:00", "12:00", "13:00", "17:00"]
        assert [p.type for p in record.punches] == [
            PunchType.entry, PunchType.exit, PunchType.entry, PunchType.exit,
        ]

    def test_odd_punch_count_ends_with_entry(self):
        records, _ = parse_generic("11122233344;2024-03-01;08:00;12:00;13:00")
        assert [p.type for p in records[0].punches] == [
            PunchType.entry, PunchType.exit, PunchType.entry,
        ]

    def test_tab_and_comma_separators(self):
        content = "11122233344\t01/02/2024\t08:00\t17:00\n22233344455,02/02/2024,09:00,18:00"
        records, _ = parse_generic(content)

        assert [r.employee_tax_id for r in records] == ["11122233344", "22233344455"]
        assert records[1].punches[1].time == "18:00"

    def test_header_line_is_skipped(self):
        content = "CPF;Data;Entrada;Saida\n11122233344;01/02/2024;08:00;17:00"
        records, issues = parse_generic(content)
        assert len(records) == 1
        assert issues == []

    def test_short_and_blank_lines_are_dropped_silently(self):
        content = "\n11122233344;01/02/2024\n\n22233344455;02/02/2024;08:00\n"
        records, issues = parse_generic(content)
        assert [r.employee_tax_id for r in records] == ["22233344455"]
        assert issues == []

    def test_bad_date_is_reported_with_line_number(self):
        content = "11122233344;01/02/2024;08:00\n22233344455;31/02/2024;08:00"
        records, issues = parse_generic(content)

        assert len(records) == 1
        assert len(issues) == 1
        assert issues[0].line == 2
        assert "31/02/2024" in issues[0].reason

    def test_explicit_punch_kinds(self):
        records, _ = parse_generic(
            "11122233344;01/02/2024;08:00@entry;12:00@break_start;13:00@break_end;17:00@exit"
        )
        assert [p.type for p in records[0].punches] == [
            PunchType.entry, PunchType.break_start, PunchType.break_end, PunchType.exit,
        ]
        assert records[0].punches[1].time == "12:00"

    def test_unknown_punch_kind_falls_back_to_parity(self):
        records, _ = parse_generic("11122233344;01/02/2024;08:00;12:00@lunch")
        assert records[0].punches[1].type == PunchType.exit
        assert records[0].punches[1].time == "12:00"

    def test_raw_line_is_kept(self):
        line = "11122233344;01/02/2024;08:00;17:00"
        records, _ = parse_generic(line)
        assert records[0].raw_data == line


# ═════════════════════════════════════════════════════════════════════
# Fixed-width AFD
# ═════════════════════════════════════════════════════════════════════


class TestDimepAfdParser:

    def test_punches_are_grouped_per_tax_id_and_day(self):
        content = "\n".join([
            "1000000000HEADER",
            _afd_line("15012024", "0800", "12345678901"),
            _afd_line("15012024", "1200", "12345678901"),
            _afd_line("15012024", "0900", "98765432100"),
            _afd_line("16012024", "0805", "12345678901"),
        ])
        records, issues = parse_dimep_afd(content)

        assert issues == []
        assert [(r.employee_tax_id, r.date) for r in records] == [
            ("12345678901", date(2024, 1, 15)),
            ("98765432100", date(2024, 1, 15)),
            ("12345678901", date(2024, 1, 16)),
        ]
        first = records[0]
        assert [p.time for p in first.punches] == ["08:00", "12:00"]
        assert [p.type for p in first.punches] == [PunchType.entry, PunchType.exit]

    def test_truncated_line_is_reported(self):
        content = "\n".join([
            _afd_line("15012024", "0800", "12345678901"),
            "3000000002150120",
        ])
        records, issues = parse_dimep_afd(content)

        assert len(records) == 1
        assert issues[0].line == 2

    def test_invalid_date_is_reported(self):
        records, issues = parse_dimep_afd(_afd_line("32132024", "0800", "12345678901"))
        assert records == []
        assert issues[0].reason.startswith("Unparseable date")


# ═════════════════════════════════════════════════════════════════════
# Dispatch
# ═════════════════════════════════════════════════════════════════════


class TestDispatch:

    def test_vendor_formats_share_generic_layout(self):
        content = "11122233344;01/02/2024;08:00;17:00"
        for system in (TimeclockSystem.henry, TimeclockSystem.secullum, TimeclockSystem.topdata):
            assert len(parse_timeclock_file(content, system)) == 1

    def test_system_accepts_plain_string(self):
        records, issues = parse_timeclock_report(
            _afd_line("15012024", "0800", "12345678901"), "dimep",
        )
        assert len(records) == 1
        assert issues == []

    def test_decode_export_falls_back_to_latin1(self):
        assert decode_export("São Paulo".encode("latin-1")) == "São Paulo"
        assert decode_export("\ufeffCPF;Data".encode("utf-8")) == "CPF;Data"
