# melzao/health/routes.py
from flask import Blueprint, jsonify

from ..db import build_runner

bp = Blueprint("health", __name__, url_prefix="/health")


@bp.get("/schema")
def schema_status():
    runner = build_runner()
    statuses = runner.status()
    up_to_date = all(s.applied for s in statuses)
    body = {
        "dialect": runner.adapter.dialect.name,
        "up_to_date": up_to_date,
        "migrations": [s.to_dict() for s in statuses],
    }
    return jsonify(body), (200 if up_to_date else 503)
