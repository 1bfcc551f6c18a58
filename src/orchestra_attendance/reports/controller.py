from __future__ import annotations

import csv
import io
import logging
from typing import Optional

from flask import Flask, current_app, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import optional_int
from ..core.enums import Granularity, MonthPeriod, ReportType
from ..core.exceptions import DataSourceError, ValidationError
from ..container import Container
from .aggregator import format_percentage
from .service import ReportData, UnexcusedRoster

logger = logging.getLogger(__name__)


def _enum_arg(enum_cls, name: str, default):
    raw = request.args.get(name)
    if not raw:
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid {name}: {raw!r}")


def report_to_csv_rows(data: ReportData) -> list[list[str]]:
    """Rows of the CSV export: header block, statistics, trend or monthly breakdown, then per-date and per-instrument tables."""
    s = data.stats
    rows: list[list[str]] = [
        ["Report type", data.report_type.value],
        ["Period", f"{data.granularity.value} ({data.start:%Y-%m-%d} - {data.end:%Y-%m-%d})"],
        ["Student", data.student_id or "all"],
        ["Instrument", data.instrument or "all"],
        [],
        ["Statistics", ""],
        ["Total attendances", str(s.total_attendance)],
        ["Total excused absences", str(s.total_excused_absences)],
        ["Total unexcused absences", str(s.total_unexcused_absences)],
        ["Attendance percentage", f"{format_percentage(s.attendance_percentage)}%"],
        ["Excused percentage", f"{format_percentage(s.excused_percentage)}%"],
        ["Unexcused percentage", f"{format_percentage(s.unexcused_percentage)}%"],
    ]

    if data.granularity == Granularity.WEEKLY and data.weekly_trend:
        rows += [[], ["Weekly trend", ""]]
        rows += [[p.week_label, f"{format_percentage(p.attendance_percentage)}%"] for p in data.weekly_trend]
        rows.append(["Trend direction", data.trend_direction.value])

    if data.granularity == Granularity.ANNUAL and data.monthly_breakdown:
        rows += [[], ["Month", "Present", "Excused", "Unexcused", "Total"]]
        rows += [
            [m.label, str(m.present), str(m.excused), str(m.unexcused), str(m.total)]
            for m in data.monthly_breakdown
        ]

    if data.daily_breakdown:
        rows += [[], ["Date", "Present", "Excused", "Unexcused", "Total"]]
        rows += [
            [f"{d.date:%Y-%m-%d}", str(d.present), str(d.excused), str(d.unexcused), str(d.total)]
            for d in data.daily_breakdown
        ]

    if data.instrument_breakdown:
        rows += [[], ["Instrument", "Present", "Excused", "Unexcused", "Total", "Attendance rate"]]
        rows += [
            [
                i.instrument,
                str(i.present),
                str(i.excused),
                str(i.unexcused),
                str(i.total),
                f"{format_percentage(i.attendance_rate)}%",
            ]
            for i in data.instrument_breakdown
        ]
    return rows


def roster_to_csv_rows(roster: UnexcusedRoster) -> list[list[str]]:
    rows: list[list[str]] = [
        ["Unexcused absences", f"{roster.date:%Y-%m-%d}"],
        [],
        ["Student", "Instrument", "Absences", "Parent", "Email", "Phone"],
    ]
    for item in roster.to_dict()["students"]:
        rows.append(
            [
                item["student_name"],
                item["instrument"],
                str(item["absences"]),
                item["parent_name"] or "",
                item["parent_email"] or "",
                item["parent_phone"] or "",
            ]
        )
    return rows


def _csv_response(app: Flask, rows: list[list[str]], filename: str):
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerows(rows)

    csv_bytes = out.getvalue().encode("utf-8-sig")
    return app.response_class(
        csv_bytes,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def register(app: Flask, container: Container) -> None:
    def _program_id() -> Optional[str]:
        return request.args.get("program_id") or current_app.config.get("DEFAULT_PROGRAM_ID") or None

    def _instrument() -> Optional[str]:
        instrument = (request.args.get("instrument") or "").strip()
        if instrument.lower() == "all":
            return None
        return instrument or None

    def _roster_from_request() -> UnexcusedRoster:
        raw = request.args.get("date")
        day = parse_iso_date(raw) if raw else now_local().date()
        return container.report_service.build_unexcused_roster(day=day, program_id=_program_id())

    def _build_from_request() -> ReportData:
        return container.report_service.build_report(
            granularity=_enum_arg(Granularity, "granularity", Granularity.MONTHLY),
            report_type=_enum_arg(ReportType, "report_type", ReportType.GROUP),
            program_id=_program_id(),
            student_id=request.args.get("student_id") or None,
            instrument=_instrument(),
            month_period=_enum_arg(MonthPeriod, "period", MonthPeriod.CURRENT),
            custom_month=request.args.get("month") or None,
            iso_week=request.args.get("week") or None,
            academic_year=optional_int(request.args.get("academic_year"), "academic_year"),
        )

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(DataSourceError)
    def handle_data_source_error(e: DataSourceError):
        logger.error("Report data unavailable: %s", e)
        return jsonify({"error": "Attendance data is temporarily unavailable"}), 503

    @app.route("/api/reports", methods=["GET"], endpoint="api_report")
    def api_report():
        return jsonify(_build_from_request().to_dict())

    @app.route("/api/reports.csv", methods=["GET"], endpoint="api_report_csv")
    def api_report_csv():
        data = _build_from_request()
        filename = f"attendance_{data.granularity.value}_{data.start.strftime('%Y%m%d')}_{data.end.strftime('%Y%m%d')}.csv"
        return _csv_response(app, report_to_csv_rows(data), filename)

    @app.route("/api/reports/rolling", methods=["GET"], endpoint="api_report_rolling")
    def api_report_rolling():
        weeks = optional_int(request.args.get("weeks"), "weeks")
        report = container.report_service.build_rolling_weekly_stats(
            weeks=weeks if weeks is not None else 4,
            program_id=_program_id(),
            student_id=request.args.get("student_id") or None,
            instrument=_instrument(),
        )
        return jsonify(
            {
                "weeks": [
                    {
                        "label": w.label,
                        "start_date": w.start.strftime("%Y-%m-%d"),
                        "end_date": w.end.strftime("%Y-%m-%d"),
                        **w.stats.to_dict(),
                    }
                    for w in report.weeks
                ],
                "changes": [
                    {
                        "label": c.week_label,
                        "attendance_change": c.attendance_change,
                        "excused_change": c.excused_change,
                        "unexcused_change": c.unexcused_change,
                    }
                    for c in report.changes
                ],
            }
        )

    @app.route("/api/reports/unexcused", methods=["GET"], endpoint="api_report_unexcused")
    def api_report_unexcused():
        return jsonify(_roster_from_request().to_dict())

    @app.route("/api/reports/unexcused.csv", methods=["GET"], endpoint="api_report_unexcused_csv")
    def api_report_unexcused_csv():
        roster = _roster_from_request()
        filename = f"unexcused_absences_{roster.date.strftime('%Y%m%d')}.csv"
        return _csv_response(app, roster_to_csv_rows(roster), filename)
