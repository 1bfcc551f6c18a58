"""Orchestra Attendance package.

Feature modules (attendance, students, reports, ...) keep the aggregation
logic in plain service/aggregator layers, with a thin Flask controller layer
and MySQL repositories behind Protocol interfaces.
"""
