"""Join per-domain bucket maps into combined report rows."""

from __future__ import annotations

from typing import Mapping, Optional

from .schemas import Bucket, CombinedReportRow, Domain

_ROW_FIELDS: Mapping[Domain, str] = {
    Domain.DRIVING: "driving_summary",
    Domain.FUEL: "fuel_summary",
    Domain.BATTERY: "battery_summary",
    Domain.ENGINE: "engine_summary",
    Domain.TIRE: "tire_summary",
}


def assemble_combined_report(
    domain_buckets: Mapping[Domain, Optional[Mapping[str, Bucket]]],
) -> list[CombinedReportRow]:
    """Full outer join of bucket maps on label, sorted ascending by label.

    A domain mapped to ``None`` (failed) or without a bucket for a label is
    rendered as an explicit ``null`` on that row.
    """

    labels: set[str] = set()
    for buckets in domain_buckets.values():
        if buckets:
            labels.update(buckets)

    rows: list[CombinedReportRow] = []
    for label in sorted(labels):
        values: dict[str, Bucket | None] = {}
        for domain, field_name in _ROW_FIELDS.items():
            buckets = domain_buckets.get(domain)
            values[field_name] = buckets.get(label) if buckets else None
        rows.append(CombinedReportRow(label=label, **values))
    return rows


__all__ = ["assemble_combined_report"]
