"""Diff report renderers for fee discrepancies."""
from __future__ import annotations

import csv
import io
from html import escape
from typing import Sequence

from fee_engine.domain.discrepancies import Discrepancy, DiscrepancyKind, DiscrepancyReport

COLUMNS = (
    "transaction_id",
    "classification",
    "tier",
    "original_fee",
    "calculated_fee",
    "original_final",
    "calculated_final",
    "implied_converted",
    "our_converted",
    "implied_fee_rate",
    "our_fee_rate",
    "message",
)


def _text(value: object) -> str:
    return "" if value is None else str(value)


def discrepancies_to_rows(discrepancies: Sequence[Discrepancy]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for item in discrepancies:
        result = item.result
        rows.append(
            {
                "transaction_id": item.transaction_id,
                "classification": item.kind.value,
                "tier": result.tier.value if result else "",
                "original_fee": _text(item.original_fee),
                "calculated_fee": _text(result.fee if result else None),
                "original_final": _text(item.original_final_amount),
                "calculated_final": _text(result.final_amount if result else None),
                "implied_converted": _text(item.implied_converted),
                "our_converted": _text(result.converted if result else None),
                "implied_fee_rate": _text(item.implied_fee_rate),
                "our_fee_rate": _text(result.fee_rate if result else None),
                "message": item.message,
            }
        )
    return rows


def render_csv(discrepancies: Sequence[Discrepancy]) -> bytes:
    rows = discrepancies_to_rows(discrepancies)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(COLUMNS))
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render_html(report: DiscrepancyReport) -> str:
    rows = discrepancies_to_rows(tuple(report.iter_all_discrepancies()))
    if not rows:
        return "<p>No discrepancies detected.</p>"
    header = "".join(f"<th>{col}</th>" for col in COLUMNS)
    body_parts = []
    for row in rows:
        body_parts.append("<tr>" + "".join(f"<td>{escape(row[col])}</td>" for col in COLUMNS) + "</tr>")
    body_html = "".join(body_parts)
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body_html}</tbody></table>"


def render_text(report: DiscrepancyReport) -> str:
    """Operator-facing listing; empty when every compared transaction matched."""
    discrepancies = tuple(report.iter_all_discrepancies())
    if not discrepancies:
        return ""
    lines = [f"Discrepancies found: {len(discrepancies)}", ""]
    for item in discrepancies:
        lines.append(f"{item.transaction_id}:")
        if item.kind is DiscrepancyKind.ERROR or item.result is None:
            lines.append(f"  Error: {item.message}")
            lines.append("")
            continue
        result = item.result
        lines.append(f"  Type: {item.kind.value} | Tier: {result.tier.value}")
        lines.append(f"  Original fee: {item.original_fee} | Calculated fee: {result.fee}")
        lines.append(f"  Original final: {item.original_final_amount} | Calculated final: {result.final_amount}")
        lines.append(f"  Implied converted: {item.implied_converted} | Our converted: {result.converted}")
        lines.append(f"  Implied feeRate: {item.implied_fee_rate} | Our feeRate: {result.fee_rate}")
        lines.append("")
    return "\n".join(lines)
