from flask import Blueprint, jsonify

from models.service import Service
from models.staff import Staff

catalog_bp = Blueprint("catalog", __name__)


@catalog_bp.get("/services")
def list_services():
    rows = Service.query.filter_by(is_active=True).order_by(Service.price_cents.asc()).all()
    return jsonify([
        {
            "id": s.id,
            "name": s.name,
            "description": s.description,
            "price_cents": s.price_cents,
            "duration_min": s.duration_min,
        }
        for s in rows
    ]), 200


@catalog_bp.get("/staff")
def list_staff():
    rows = Staff.query.filter_by(is_active=True).order_by(Staff.name.asc()).all()
    return jsonify([{"id": s.id, "name": s.name, "bio": s.bio} for s in rows]), 200
