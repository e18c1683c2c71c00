from __future__ import annotations

import csv
import io
from typing import Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..container import Container
from ..core.exceptions import ValidationError
from ..identity.session_provider import current_worker, login_required
from .aggregator import REPORT_COLUMNS


def register(app: Flask, container: Container) -> None:
    reports = container.report_service

    def _date_arg(name: str) -> Optional[str]:
        value = (request.args.get(name) or "").strip()
        if not value:
            return None
        try:
            return parse_iso_date(value).isoformat()
        except ValueError:
            raise ValidationError(f"{name} must be YYYY-MM-DD")

    def _write_report_csv(*, data, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=list(REPORT_COLUMNS))
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row.to_dict())

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    def _build():
        return reports.build_report(
            viewer=current_worker(),
            worker_filter=request.args.get("worker") or None,
            date_from=_date_arg("from"),
            date_to=_date_arg("to"),
        )

    @app.route("/api/reports/summary", methods=["GET"], endpoint="report_summary")
    @login_required
    def report_summary():
        data = _build()
        return jsonify(
            {
                "success": True,
                "total_hours": round(data.total_hours, 4),
                "unique_locations": data.unique_locations,
                "record_count": data.record_count,
                "hours_by_day": [{"day": d.day, "hours": round(d.hours, 4)} for d in data.hours_by_day],
                "workers": data.summary,
                "rows": [row.to_dict() for row in data.rows],
            }
        ), 200

    @app.route("/reports/attendance.csv", methods=["GET"], endpoint="report_csv")
    @login_required
    def report_csv():
        data = _build()
        scope = request.args.get("worker") or current_worker().worker_id
        return _write_report_csv(data=data, filename=f"attendance_{scope}.csv")
