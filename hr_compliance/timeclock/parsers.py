"""Format adapters for time-clock exports.

Every adapter turns raw export text into canonical ``TimeclockRecord``s in
input line order. Lines that are structurally not records (blank lines,
headers, rows with too few fields) are skipped silently; lines that look
like records but cannot be read are reported as ``ParseIssue``s.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Union

from hr_compliance.common.constants import PunchType, TimeclockSystem
from hr_compliance.core_hr.models import normalize_tax_id
from hr_compliance.timeclock.schemas import ParseIssue, Punch, TimeclockRecord

logger = logging.getLogger(__name__)

ParseResult = tuple[list[TimeclockRecord], list[ParseIssue]]

_SEPARATORS = (";", "\t", ",")
_HEADER_MARKERS = ("cpf", "tax")
_KIND_MARKER = "@"


def decode_export(data: bytes) -> str:
    """Decode an uploaded export; AFD files are often Latin-1."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _split_fields(line: str) -> list[str]:
    for sep in _SEPARATORS:
        if sep in line:
            return line.split(sep)
    return [line]


def _parse_date(value: str) -> date:
    """``DD/MM/YYYY`` or ISO ``YYYY-MM-DD``; raises ValueError otherwise."""
    if "/" in value:
        return datetime.strptime(value, "%d/%m/%Y").date()
    return date.fromisoformat(value[:10])


def _parity_kind(index: int) -> PunchType:
    return PunchType.entry if index % 2 == 0 else PunchType.exit


def _parse_punch(token: str, index: int) -> Punch:
    """``"08:00"`` uses positional parity; ``"08:00@break_start"`` is explicit."""
    time_part, marker, kind = token.partition(_KIND_MARKER)
    if marker:
        try:
            return Punch(time=time_part.strip(), type=PunchType(kind.strip().lower()))
        except ValueError:
            logger.warning("Unknown punch kind %r; using positional parity", kind)
    return Punch(time=time_part.strip(), type=_parity_kind(index))


# ═════════════════════════════════════════════════════════════════════
# Generic delimited format
# ═════════════════════════════════════════════════════════════════════


def _is_header(line: str) -> bool:
    first = _split_fields(line)[0].strip().lower()
    return any(marker in first for marker in _HEADER_MARKERS)


def parse_generic(content: str) -> ParseResult:
    """``tax_id;date;punch1;punch2;...`` with ``;``, tab or ``,`` separators."""
    records: list[TimeclockRecord] = []
    issues: list[ParseIssue] = []
    lines = content.strip().splitlines()

    for number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line:
            continue
        if number == 1 and _is_header(line):
            continue

        parts = _split_fields(line)
        if len(parts) < 3:
            continue

        tax_id = normalize_tax_id(parts[0])
        date_str = parts[1].strip()
        if not tax_id or not date_str:
            continue

        try:
            record_date = _parse_date(date_str)
        except ValueError:
            issues.append(ParseIssue(
                line=number, reason=f"Unparseable date '{date_str}'", raw=line,
            ))
            continue

        tokens = [p.strip() for p in parts[2:] if p.strip()]
        records.append(TimeclockRecord(
            employee_tax_id=tax_id,
            date=record_date,
            punches=[_parse_punch(tok, idx) for idx, tok in enumerate(tokens)],
            raw_data=line,
        ))

    return records, issues


# ═════════════════════════════════════════════════════════════════════
# Fixed-width AFD (record type 3)
# ═════════════════════════════════════════════════════════════════════

# Field offsets in a type-3 (punch) line
AFD_PUNCH_RECORD = "3"
AFD_DATE = slice(10, 18)     # DDMMYYYY
AFD_TIME = slice(18, 22)     # HHMM
AFD_TAX_ID = slice(23, 34)


def parse_dimep_afd(content: str) -> ParseResult:
    """One punch per line; punches for the same tax id and day are merged."""
    grouped: dict[tuple[str, date], TimeclockRecord] = {}
    issues: list[ParseIssue] = []

    for number, raw_line in enumerate(content.strip().splitlines(), start=1):
        line = raw_line.rstrip("\r\n")
        if not line.startswith(AFD_PUNCH_RECORD):
            continue

        tax_id = line[AFD_TAX_ID].strip()
        time_str = line[AFD_TIME]
        if not tax_id or len(time_str) != 4 or not time_str.isdigit():
            issues.append(ParseIssue(line=number, reason="Truncated fixed-width record", raw=line))
            continue

        try:
            record_date = datetime.strptime(line[AFD_DATE], "%d%m%Y").date()
        except ValueError:
            issues.append(ParseIssue(
                line=number, reason=f"Unparseable date '{line[AFD_DATE]}'", raw=line,
            ))
            continue

        record = grouped.get((tax_id, record_date))
        if record is None:
            record = TimeclockRecord(employee_tax_id=tax_id, date=record_date, raw_data=line)
            grouped[(tax_id, record_date)] = record
        else:
            record.raw_data = f"{record.raw_data}\n{line}"

        record.punches.append(Punch(
            time=f"{time_str[:2]}:{time_str[2:]}",
            type=_parity_kind(len(record.punches)),
        ))

    return list(grouped.values()), issues


# ═════════════════════════════════════════════════════════════════════
# Vendor extension points
# ═════════════════════════════════════════════════════════════════════


def parse_henry(content: str) -> ParseResult:
    # Henry exports share the generic column layout.
    return parse_generic(content)


def parse_secullum(content: str) -> ParseResult:
    return parse_generic(content)


def parse_topdata(content: str) -> ParseResult:
    # Topdata Inner Rep delimited export
    return parse_generic(content)


PARSERS: dict[TimeclockSystem, Callable[[str], ParseResult]] = {
    TimeclockSystem.generic: parse_generic,
    TimeclockSystem.manual: parse_generic,
    TimeclockSystem.dimep: parse_dimep_afd,
    TimeclockSystem.henry: parse_henry,
    TimeclockSystem.secullum: parse_secullum,
    TimeclockSystem.topdata: parse_topdata,
}


def parse_timeclock_report(
    content: str,
    system: Union[TimeclockSystem, str],
) -> ParseResult:
    """Parse *content* and return ``(records, issues)``."""
    parser = PARSERS.get(TimeclockSystem(system), parse_generic)
    records, issues = parser(content)
    if issues:
        logger.info(
            "Parsed %d record(s) from %s export with %d issue(s)",
            len(records), TimeclockSystem(system).value, len(issues),
        )
    return records, issues


def parse_timeclock_file(
    content: str,
    system: Union[TimeclockSystem, str],
) -> list[TimeclockRecord]:
    return parse_timeclock_report(content, system)[0]

