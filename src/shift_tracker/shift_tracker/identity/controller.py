from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..container import Container
from ..core.exceptions import AuthenticationError
from .session_provider import current_worker_context

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    accounts = container.accounts

    @app.route("/api/session", methods=["POST"], endpoint="sign_in")
    def sign_in():
        payload = request.get_json(silent=True) if request.is_json else request.form.to_dict()
        payload = payload or {}
        worker_id = str(payload.get("worker_id") or "")
        try:
            worker = accounts.authenticate(worker_id, str(payload.get("password") or ""))
        except AuthenticationError:
            logger.info("failed sign-in for %r", worker_id)
            raise

        session.clear()
        session["worker_id"] = worker.worker_id
        session["role"] = worker.role.value
        session["name"] = worker.display_name
        container.directory.add(worker)
        logger.info("%s signed in", worker.worker_id)
        return jsonify(
            {
                "success": True,
                "message": "Signed in",
                "worker": {"worker_id": worker.worker_id, "name": worker.display_name, "role": worker.role.value},
            }
        ), 200

    @app.route("/api/session", methods=["DELETE"], endpoint="sign_out")
    def sign_out():
        session.clear()
        current_worker_context().clear()
        return jsonify({"success": True, "message": "Signed out"}), 200
