from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from videogen.domain.models import NormalizedParams, ProviderStatus


@dataclass
class ProviderSubmitResult:
    provider_job_id: str
    raw_response: Dict[str, Any]


class ProviderClient(Protocol):
    provider_name: str

    async def submit(self, params: NormalizedParams) -> ProviderSubmitResult:
        ...

    async def query_status(self, provider_job_id: str) -> ProviderStatus:
        ...

    async def cancel(self, provider_job_id: str) -> None:
        ...
