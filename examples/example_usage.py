"""Example: build a weekly report through the service layer (no Flask).

Controllers are a thin layer; fetching and aggregation live in the report service.
"""

import importlib

from orchestra_attendance.config import get_settings_module
from orchestra_attendance.container import build_container
from orchestra_attendance.core.enums import Granularity


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    report = container.report_service.build_report(granularity=Granularity.WEEKLY)
    print(report.stats)
    for point in report.weekly_trend:
        print(f"{point.week_label}: {point.attendance_percentage:.1f}%")
    print("trend:", report.trend_direction.value)


if __name__ == "__main__":
    main()
