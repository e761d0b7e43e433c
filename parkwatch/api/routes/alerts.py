"""
Alert rules API: create, list, enable/disable, remove, look up by attraction.
Rules live in the AlertEngine for the process lifetime.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from parkwatch.api.deps import get_engine
from parkwatch.core.errors import STATUS_NOT_FOUND, InvalidThreshold, error_to_http
from parkwatch.services.alerts import AlertEngine

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateAlertRequest(BaseModel):
    attraction_id: str = Field(..., min_length=1, max_length=128)
    threshold_minutes: int = Field(..., description="Notify at or below this many minutes (0-240)")


class UpdateAlertRequest(BaseModel):
    enabled: bool


@router.get("/alerts")
def list_alerts(
    engine: AlertEngine = Depends(get_engine),
    include_disabled: bool = Query(False),
) -> dict[str, Any]:
    rules = engine.list_rules() if include_disabled else engine.list_active_rules()
    return {"rules": [r.to_dict() for r in rules], "count": len(rules)}


@router.post("/alerts", status_code=201)
def create_alert(body: CreateAlertRequest, engine: AlertEngine = Depends(get_engine)) -> dict[str, Any]:
    """Create a rule. Creating the same (attraction, threshold) again returns the existing rule."""
    try:
        rule_id = engine.add_rule(body.attraction_id, body.threshold_minutes)
    except InvalidThreshold as e:
        raise error_to_http(e) from e
    rule = engine.get_rule(rule_id)
    return {"id": rule_id, "rule": rule.to_dict() if rule else None}


@router.patch("/alerts/{rule_id}")
def update_alert(
    rule_id: str,
    body: UpdateAlertRequest,
    engine: AlertEngine = Depends(get_engine),
) -> dict[str, Any]:
    rule = engine.set_enabled(rule_id, body.enabled)
    if rule is None:
        raise HTTPException(status_code=STATUS_NOT_FOUND, detail="Alert rule not found.")
    return {"ok": True, "rule": rule.to_dict()}


@router.delete("/alerts/{rule_id}")
def delete_alert(rule_id: str, engine: AlertEngine = Depends(get_engine)) -> dict[str, Any]:
    """Idempotent: deleting an unknown rule is ok."""
    engine.remove_rule(rule_id)
    return {"ok": True, "id": rule_id}


@router.get("/alerts/attraction/{attraction_id}")
def find_alert_for_attraction(attraction_id: str, engine: AlertEngine = Depends(get_engine)) -> dict[str, Any]:
    rule = engine.find_rule_for_attraction(attraction_id)
    return {"attraction_id": attraction_id, "rule": rule.to_dict() if rule else None}
