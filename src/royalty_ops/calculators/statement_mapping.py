"""Royalty statement import: header detection, field mapping, row parsing."""

from __future__ import annotations

import csv
import io
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from royalty_ops.calculators.types import (
    AllocationCandidate,
    MappedStatement,
    MappingIssue,
)
from royalty_ops.errors import StatementMappingError

# Canonical allocation field -> header patterns, most specific first
COLUMN_PATTERNS: dict[str, list[str]] = {
    "isrc": ["isrc", "recording code", "track id", "asset id"],
    "iswc": ["iswc", "work code"],
    "song_title": ["song title", "track title", "work title", "song name", "track name", "title", "song", "track"],
    "artist": ["track artist", "artist", "performer", "writer"],
    "country": ["country", "territory", "region", "market"],
    "revenue_source": ["revenue source", "income type", "usage type", "source", "store", "platform", "dsp"],
    "quantity": ["quantity", "units", "streams", "plays", "performances", "count"],
    "gross_royalty_amount": ["gross royalty", "gross amount", "gross revenue", "gross", "revenue", "amount earned", "amount"],
    "net_amount": ["net amount", "net royalty", "net revenue", "net", "payable", "your share"],
}

REQUIRED_FIELDS = ("song_title", "gross_royalty_amount")

NUMERIC_FIELDS = {"quantity", "gross_royalty_amount", "net_amount"}

# Headers containing these words never map to the field
FIELD_DISQUALIFIERS: dict[str, tuple[str, ...]] = {
    "gross_royalty_amount": ("net", "%", "percent", "rate"),
    "net_amount": ("gross", "%", "percent", "rate"),
    "song_title": ("album", "product", "release"),
}

_MONEY_NOISE = re.compile(r"[\s$€£¥,]")


def propose_mapping(headers: Iterable[str]) -> dict[str, str]:
    """Map canonical fields to raw headers by pattern.

    Matching is case-insensitive; an exact header match beats a substring
    match and each raw header is used at most once.
    """
    columns = [h for h in headers if h is not None]
    lowered = {h: h.strip().lower() for h in columns}
    mapped: dict[str, str] = {}
    used: set[str] = set()

    for exact in (True, False):
        for field, patterns in COLUMN_PATTERNS.items():
            if field in mapped:
                continue
            disqualifiers = FIELD_DISQUALIFIERS.get(field, ())
            for pattern in patterns:
                for original, low in lowered.items():
                    if original in used:
                        continue
                    hit = low == pattern if exact else pattern in low
                    if not hit or any(dq in low for dq in disqualifiers):
                        continue
                    mapped[field] = original
                    used.add(original)
                    break
                if field in mapped:
                    break

    return mapped


def parse_money(value: Any) -> Decimal | None:
    """Parse a statement amount; parentheses mean negative, blanks are None."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        text = str(value).strip()
        if not text:
            return None
        negative = text.startswith("(") and text.endswith(")")
        text = _MONEY_NOISE.sub("", text.strip("()"))
        try:
            amount = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"not a number: {value!r}") from exc
        if negative:
            amount = -amount

    # NaN and infinities parse as Decimals but are not amounts
    if not amount.is_finite():
        raise ValueError(f"not a number: {value!r}")
    return amount


def read_rows(statement: str | Iterable[Mapping[str, Any]]) -> tuple[list[str], list[dict[str, Any]]]:
    """Return headers and rows from CSV text or already-parsed dict rows."""
    if isinstance(statement, str):
        text = statement.lstrip("﻿")
        sample = text[:4096]
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
        except csv.Error:
            dialect = csv.excel
        reader = csv.DictReader(io.StringIO(text), dialect=dialect)
        rows = [dict(r) for r in reader]
        return list(reader.fieldnames or []), rows

    rows = [dict(r) for r in statement]
    headers: list[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)
    return headers, rows


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_statement(
    statement: str | Iterable[Mapping[str, Any]],
    mapping: Mapping[str, str] | None = None,
) -> MappedStatement:
    """Parse a statement into allocation candidates.

    Rows that cannot be parsed are reported as issues and skipped; blank
    rows are ignored. Raises StatementMappingError if a required field
    has no column.
    """
    headers, rows = read_rows(statement)
    field_map = dict(mapping) if mapping else propose_mapping(headers)

    missing = [f for f in REQUIRED_FIELDS if f not in field_map or field_map[f] not in headers]
    if missing:
        raise StatementMappingError(missing)

    result = MappedStatement(
        mapping=field_map,
        unmapped_columns=[h for h in headers if h not in field_map.values()],
    )

    for index, row in enumerate(rows, start=1):
        if not any(_clean(v) for v in row.values()):
            continue

        values: dict[str, Any] = {}
        row_ok = True
        for field, column in field_map.items():
            raw = row.get(column)
            if field in NUMERIC_FIELDS:
                try:
                    values[field] = parse_money(raw)
                except ValueError as exc:
                    result.issues.append(MappingIssue(index, field, str(exc)))
                    row_ok = False
            else:
                values[field] = _clean(raw)

        if not row_ok:
            continue
        if not values.get("song_title"):
            result.issues.append(MappingIssue(index, "song_title", "missing song title"))
            continue
        if values.get("gross_royalty_amount") is None:
            result.issues.append(MappingIssue(index, "gross_royalty_amount", "missing gross amount"))
            continue

        result.candidates.append(
            AllocationCandidate(
                line_number=index,
                song_title=values["song_title"],
                gross_royalty_amount=values["gross_royalty_amount"],
                artist=values.get("artist"),
                isrc=values.get("isrc"),
                iswc=values.get("iswc"),
                country=values.get("country"),
                revenue_source=values.get("revenue_source"),
                quantity=values.get("quantity"),
                net_amount=values.get("net_amount"),
                raw={k: v for k, v in row.items() if k is not None},
            )
        )

    return result
