from __future__ import annotations

from fleet_analytics.reporting.combined import assemble_combined_report
from fleet_analytics.reporting.schemas import Bucket, Domain, DrivingSummary, FuelSummary


def _bucket(domain: Domain, label: str) -> Bucket:
    summary = DrivingSummary() if domain is Domain.DRIVING else FuelSummary()
    return Bucket(label=label, device_id="dev-1", domain=domain, summary=summary)


def test_outer_join_sorted_with_explicit_nulls() -> None:
    rows = assemble_combined_report(
        {
            Domain.DRIVING: {
                "2024-01-02": _bucket(Domain.DRIVING, "2024-01-02"),
                "2024-01-01": _bucket(Domain.DRIVING, "2024-01-01"),
            },
            Domain.FUEL: {"2024-01-03": _bucket(Domain.FUEL, "2024-01-03")},
            Domain.BATTERY: None,
        }
    )

    assert [row.label for row in rows] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert rows[0].fuel_summary is None
    assert rows[2].driving_summary is None
    assert rows[2].fuel_summary.domain is Domain.FUEL
    assert all(row.battery_summary is None and row.tire_summary is None for row in rows)
    assert rows[0].model_dump()["engine_summary"] is None


def test_week_labels_sort_across_year_boundary() -> None:
    rows = assemble_combined_report(
        {
            Domain.DRIVING: {
                "2024-W01": _bucket(Domain.DRIVING, "2024-W01"),
                "2023-W52": _bucket(Domain.DRIVING, "2023-W52"),
            }
        }
    )

    assert [row.label for row in rows] == ["2023-W52", "2024-W01"]


def test_no_domains_gives_no_rows() -> None:
    assert assemble_combined_report({Domain.DRIVING: None}) == []
