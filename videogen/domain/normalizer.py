from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from videogen.domain.errors import ParamValidationError
from videogen.domain.models import NormalizedParams, VideoJobCreate

logger = logging.getLogger("videogen.normalizer")

PROMPT_MAX_CHARS = 980

# ASCII digits only; str.isdigit() also matches superscripts and other scripts
_DURATION_RE = re.compile(r"[0-9]{1,6}")

# Display aspect ratio -> provider pixel ratio
RATIO_MAP: Dict[str, str] = {
    "16:9": "1280:720",
    "9:16": "720:1280",
    "1:1": "960:960",
    "4:3": "1280:960",
    "3:4": "960:1280",
}

PROVIDER_RATIOS = frozenset(RATIO_MAP.values())

# Display name -> provider model id
MODEL_MAP: Dict[str, str] = {
    "gen-4 turbo": "gen4_turbo",
    "gen-3 alpha turbo": "gen3a_turbo",
    "veo 3": "veo3",
}

PROVIDER_MODELS = frozenset(MODEL_MAP.values())


def normalize_prompt(prompt: Any) -> str:
    if not isinstance(prompt, str):
        raise ParamValidationError(ParamValidationError.EMPTY_PROMPT, "prompt is required")
    collapsed = " ".join(prompt.split())
    truncated = collapsed[:PROMPT_MAX_CHARS]
    if not truncated:
        raise ParamValidationError(ParamValidationError.EMPTY_PROMPT, "prompt is empty after trimming")
    return truncated


def normalize_duration(duration: Any) -> int:
    value: Optional[int] = None
    if isinstance(duration, bool):
        value = None
    elif isinstance(duration, int):
        value = duration
    elif isinstance(duration, float) and duration.is_integer():
        value = int(duration)
    elif isinstance(duration, str) and _DURATION_RE.fullmatch(duration.strip()):
        value = int(duration.strip())

    if value is None or value <= 0:
        raise ParamValidationError(
            ParamValidationError.INVALID_DURATION,
            f"duration must be a positive whole number of seconds, got {duration!r}",
        )
    return value


def normalize_ratio(ratio: Any) -> str:
    s = str(ratio or "").strip()
    if s in RATIO_MAP:
        return RATIO_MAP[s]
    if s in PROVIDER_RATIOS:
        return s
    raise ParamValidationError(
        ParamValidationError.UNSUPPORTED_RATIO,
        f"unsupported aspect ratio {ratio!r}; expected one of {', '.join(RATIO_MAP)}",
    )


def normalize_model(model: Any, default_model_id: str) -> str:
    """Unknown names fall back to the configured default; never an error."""
    s = str(model or "").strip()
    if not s:
        return default_model_id
    key = s.lower()
    if key in MODEL_MAP:
        return MODEL_MAP[key]
    if key in PROVIDER_MODELS:
        return key
    logger.info("model_name_unrecognized", extra={"model": s, "fallback": default_model_id})
    return default_model_id


def normalize_params(raw: VideoJobCreate, default_model_id: str) -> NormalizedParams:
    image_url = (raw.image_url or "").strip() or None
    return NormalizedParams(
        prompt=normalize_prompt(raw.prompt),
        duration_seconds=normalize_duration(raw.duration),
        ratio=normalize_ratio(raw.ratio),
        model_id=normalize_model(raw.model, default_model_id),
        image_url=image_url,
    )
