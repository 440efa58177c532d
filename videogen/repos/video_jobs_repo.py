from __future__ import annotations

import json
from typing import Any, List, Optional

import asyncpg

from videogen.domain.enums import JobStatus, ProviderName
from videogen.domain.models import JobUpdate, NormalizedParams, VideoJob
from videogen.repos.base import check_update

_COLUMNS = """
  id, provider, provider_job_id, params_json, status, progress,
  outputs_json, error_message, created_at, updated_at, completed_at
"""
_J_COLUMNS = ", ".join("j." + c.strip() for c in _COLUMNS.split(","))


def _json_value(v: Any) -> Any:
    if isinstance(v, str):
        return json.loads(v)
    return v


class PostgresVideoJobsRepo:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def ensure_schema(self) -> None:
        sql = """
        CREATE TABLE IF NOT EXISTS video_jobs (
            id TEXT PRIMARY KEY,
            provider TEXT NOT NULL,
            provider_job_id TEXT,
            params_json JSONB NOT NULL,
            status TEXT NOT NULL,
            progress DOUBLE PRECISION NOT NULL DEFAULT 0,
            outputs_json JSONB NOT NULL DEFAULT '[]'::jsonb,
            error_message TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            completed_at TIMESTAMPTZ
        );
        CREATE INDEX IF NOT EXISTS idx_video_jobs_status ON video_jobs (status, created_at);
        """
        async with self.pool.acquire() as conn:
            await conn.execute(sql)

    async def insert(self, job: VideoJob) -> VideoJob:
        sql = f"""
        INSERT INTO video_jobs
          (id, provider, provider_job_id, params_json, status, progress,
           outputs_json, error_message, created_at, updated_at, completed_at)
        VALUES ($1, $2, $3, $4::jsonb, $5, $6, $7::jsonb, $8, $9, $10, $11)
        RETURNING {_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                sql,
                job.job_id,
                job.provider.value,
                job.provider_job_id,
                json.dumps(job.params.model_dump(mode="json")),
                job.status.value,
                job.progress,
                json.dumps(job.outputs),
                job.error_message,
                job.created_at,
                job.updated_at,
                job.completed_at,
            )
        return self._row_to_job(row)

    async def update(self, job_id: str, changes: JobUpdate) -> Optional[VideoJob]:
        """
        Single guarded UPDATE; terminal rows never match, so a second
        terminal write is a no-op and returns None.

        Mirrors videogen.repos.base.apply_update.
        """
        check_update(changes)
        sql = f"""
        WITH next AS (
            SELECT id,
                   CASE
                     WHEN $3::text IS NULL THEN status
                     WHEN status = 'running' AND $3::text = 'pending' THEN status
                     ELSE $3::text
                   END AS status
            FROM video_jobs
            WHERE id = $1
              AND status NOT IN ('succeeded', 'failed', 'cancelled')
            FOR UPDATE
        )
        UPDATE video_jobs j
        SET provider_job_id = COALESCE(j.provider_job_id, $2::text),
            status = next.status,
            progress = CASE
                WHEN next.status = 'succeeded' THEN 1.0
                ELSE GREATEST(j.progress, COALESCE($4::float8, j.progress))
            END,
            outputs_json = CASE
                WHEN next.status = 'succeeded' THEN $5::jsonb
                ELSE j.outputs_json
            END,
            error_message = CASE
                WHEN next.status = 'failed' THEN COALESCE($6::text, 'failed')
                ELSE j.error_message
            END,
            completed_at = CASE
                WHEN next.status IN ('succeeded', 'failed', 'cancelled') THEN COALESCE(j.completed_at, now())
                ELSE j.completed_at
            END,
            updated_at = GREATEST(now(), j.created_at)
        FROM next
        WHERE j.id = next.id
        RETURNING {_J_COLUMNS}
        """
        outputs_json = json.dumps(changes.outputs) if changes.outputs is not None else None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                sql,
                job_id,
                changes.provider_job_id,
                changes.status.value if changes.status else None,
                changes.progress,
                outputs_json,
                changes.error_message,
            )
        return self._row_to_job(row) if row else None

    async def get(self, job_id: str) -> Optional[VideoJob]:
        sql = f"SELECT {_COLUMNS} FROM video_jobs WHERE id = $1"
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, job_id)
        return self._row_to_job(row) if row else None

    async def list_active(self, limit: int = 500) -> List[VideoJob]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM video_jobs
        WHERE status IN ('pending', 'running')
        ORDER BY created_at
        LIMIT $1
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, limit)
        return [self._row_to_job(r) for r in rows]

    def _row_to_job(self, row: asyncpg.Record) -> VideoJob:
        return VideoJob(
            job_id=str(row["id"]),
            provider=ProviderName(row["provider"]),
            provider_job_id=row["provider_job_id"],
            params=NormalizedParams.model_validate(_json_value(row["params_json"])),
            status=JobStatus(row["status"]),
            progress=float(row["progress"] or 0.0),
            outputs=list(_json_value(row["outputs_json"]) or []),
            error_message=row["error_message"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )
