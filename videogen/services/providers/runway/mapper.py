from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from videogen.domain.enums import JobStatus
from videogen.domain.models import NormalizedParams

logger = logging.getLogger("runway_mapper")

STATE_MAP: Dict[str, JobStatus] = {
    "PENDING": JobStatus.pending,
    "THROTTLED": JobStatus.pending,
    "RUNNING": JobStatus.running,
    "SUCCEEDED": JobStatus.succeeded,
    "FAILED": JobStatus.failed,
    "CANCELLED": JobStatus.cancelled,
}


def map_state(raw_state: Any, provider_job_id: Optional[str] = None) -> JobStatus:
    """Unknown states are treated as still in flight."""
    s = str(raw_state or "").strip().upper()
    if s in STATE_MAP:
        return STATE_MAP[s]
    logger.warning(
        "runway_state_unrecognized",
        extra={"raw_state": raw_state, "provider_job_id": provider_job_id},
    )
    return JobStatus.running


def build_generation_payload(params: NormalizedParams) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "promptText": params.prompt,
        "model": params.model_id,
        "ratio": params.ratio,
        "duration": params.duration_seconds,
    }
    if params.image_url:
        payload["promptImage"] = params.image_url
    return payload


def extract_task_id(obj: Dict[str, Any]) -> Optional[str]:
    data = obj.get("data") if isinstance(obj.get("data"), dict) else {}
    task_id = obj.get("id") or obj.get("taskId") or data.get("id") or data.get("taskId")
    if task_id is None or isinstance(task_id, (dict, list)):
        return None
    s = str(task_id).strip()
    return s or None


def extract_outputs(obj: Dict[str, Any]) -> List[str]:
    raw = obj.get("output")
    if raw is None:
        raw = obj.get("outputs")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [str(u) for u in raw if isinstance(u, str) and u.strip()]


def extract_progress(obj: Dict[str, Any]) -> Optional[float]:
    raw = obj.get("progress")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return min(1.0, max(0.0, float(raw)))


def extract_error_message(obj: Dict[str, Any]) -> Optional[str]:
    msg = obj.get("failure") or obj.get("error") or obj.get("failureCode")
    return str(msg) if msg else None
