"""Cycle data API endpoints."""

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from services.models import FilterCriteria
from services.projection import cycle_overview, filter_snapshot, slice_by_area

bp = Blueprint("cycle_data", __name__, url_prefix="/api/cycle-data")


def get_list_param(name):
    """Get a comma-separated list from query params."""
    values = request.args.get(name, "")
    if not values:
        return ()
    return tuple(v.strip() for v in values.split(",") if v.strip())


def get_filter_criteria():
    """Build FilterCriteria from query params.

    Query params:
        - area: Area id
        - objectives: Comma-separated objective ids
        - stages: Comma-separated stage ids
        - assignees: Comma-separated assignee ids ("all" for everyone)
        - cycle: Cycle id
    """
    return FilterCriteria(
        area=request.args.get("area") or None,
        objective_ids=get_list_param("objectives"),
        stage_ids=get_list_param("stages"),
        assignee_ids=get_list_param("assignees"),
        cycle=request.args.get("cycle") or None,
    )


def get_unassigned_objective_id():
    """Objective id for bets without one, from the organisation settings."""
    return current_app.extensions["organisation_settings"].defaults.objective.id


def fetch_snapshot():
    """Fetch a fresh snapshot.

    Returns:
        (snapshot, None) on success or (None, error response) on failure
    """
    adapter = current_app.extensions["cycle_data_adapter"]
    result = adapter.fetch_snapshot()
    if not result.is_ok:
        current_app.logger.error(f"Failed to fetch cycle data: {result.error}")
        return None, (jsonify({"error": f"Failed to fetch cycle data: {result.error}"}), 502)
    return result.value, None


@bp.route("", methods=["GET"])
def get_cycle_data():
    """Get the full domain snapshot.

    Returns:
        - cycles, roadmapBets, workItems, areas, objectives, teams,
          assignees, stages
    """
    snapshot, error = fetch_snapshot()
    if error:
        return error
    return jsonify({"data": snapshot.to_dict()})


@bp.route("/projection", methods=["GET"])
def get_projection():
    """Get roadmap bets filtered by the query params."""
    snapshot, error = fetch_snapshot()
    if error:
        return error
    projection = filter_snapshot(snapshot, get_filter_criteria(), get_unassigned_objective_id())
    return jsonify({"data": projection.to_dict()})


@bp.route("/areas", methods=["GET"])
def get_area_slices():
    """Get one projection per area, plus the "overview" slice."""
    snapshot, error = fetch_snapshot()
    if error:
        return error
    slices = slice_by_area(snapshot, get_filter_criteria(), get_unassigned_objective_id())
    return jsonify({"data": {area_id: p.to_dict() for area_id, p in slices.items()}})


@bp.route("/overview", methods=["GET"])
def get_cycle_overview():
    """Get the selected (or default) cycle with its projection and progress.

    Query params:
        - cycle: Optional cycle id; the default cycle is picked otherwise
        - area, objectives, stages, assignees: as for /projection
    """
    snapshot, error = fetch_snapshot()
    if error:
        return error
    overview = cycle_overview(
        snapshot, get_filter_criteria(), datetime.now(), get_unassigned_objective_id()
    )
    if overview is None:
        return jsonify({"error": "No cycles available"}), 404
    return jsonify({"data": overview})
