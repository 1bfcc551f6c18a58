from __future__ import annotations

from flask import Flask, current_app, jsonify, request

from ..container import Container


def register(app: Flask, container: Container) -> None:
    def _program_id():
        return request.args.get("program_id") or current_app.config.get("DEFAULT_PROGRAM_ID") or None

    @app.route("/api/students", methods=["GET"], endpoint="api_students")
    def api_students():
        instrument = (request.args.get("instrument") or "").strip()
        if instrument.lower() == "all":
            instrument = ""
        students = container.students_repo.list_active(program_id=_program_id(), instrument=instrument or None)
        return jsonify(
            [
                {
                    "id": s.student_id,
                    "name": s.full_name,
                    "instrument": s.instrument or "Not assigned",
                }
                for s in students
            ]
        )

    @app.route("/api/instruments", methods=["GET"], endpoint="api_instruments")
    def api_instruments():
        return jsonify(list(container.students_repo.list_instruments(program_id=_program_id())))
