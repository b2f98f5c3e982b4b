"""
Repository for ``companies`` and ``company_progress``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional

from journey_recommender.db.repositories.base import (
    BaseRepository,
    dump_list,
    load_list,
    placeholders,
)
from journey_recommender.models.step import CompanyProfile, CompanyProgressRecord
from journey_recommender.taxonomy.journey_taxonomy import ProgressStatus
from journey_recommender.utils.time_utils import parse_timestamp, to_iso

logger = logging.getLogger(__name__)


class CompanyRepository(BaseRepository):
    """Read/write access to company profiles and step progress."""

    def upsert_company(self, profile: CompanyProfile) -> None:
        self.execute(
            """
            INSERT INTO companies (
                company_id, name, industry_id, stage, size,
                business_model, focus_areas, maturity_score
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(company_id) DO UPDATE SET
                name           = excluded.name,
                industry_id    = excluded.industry_id,
                stage          = excluded.stage,
                size           = excluded.size,
                business_model = excluded.business_model,
                focus_areas    = excluded.focus_areas,
                maturity_score = excluded.maturity_score;
            """,
            (
                profile.company_id,
                profile.name,
                profile.industry_id,
                profile.stage,
                profile.size,
                profile.business_model,
                dump_list(profile.focus_areas),
                profile.maturity_score,
            ),
        )

    def get_profile(self, company_id: str) -> Optional[CompanyProfile]:
        row = self.fetchone("SELECT * FROM companies WHERE company_id = ?;", (company_id,))
        return _row_to_profile(row) if row else None

    def upsert_progress(self, record: CompanyProgressRecord) -> None:
        self.execute(
            """
            INSERT INTO company_progress (company_id, step_id, status, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(company_id, step_id) DO UPDATE SET
                status     = excluded.status,
                updated_at = excluded.updated_at;
            """,
            (
                record.company_id,
                record.step_id,
                record.status.value,
                to_iso(record.updated_at),
            ),
        )

    def get_progress(
        self,
        company_id: str,
        statuses: Optional[Iterable[ProgressStatus]] = None,
    ) -> list[CompanyProgressRecord]:
        """Progress rows for a company ordered by step id.

        Args:
            company_id: Company to read.
            statuses:   Restrict to these statuses; ``None`` = all.
        """
        sql = "SELECT * FROM company_progress WHERE company_id = ?"
        params: list[str] = [company_id]
        if statuses is not None:
            wanted = sorted(ProgressStatus(s).value for s in statuses)
            if not wanted:
                return []
            sql += f" AND status IN ({placeholders(wanted)})"
            params.extend(wanted)
        rows = self.fetchall(sql + " ORDER BY step_id;", tuple(params))
        return [
            CompanyProgressRecord(
                company_id=r["company_id"],
                step_id=r["step_id"],
                status=ProgressStatus(r["status"]),
                updated_at=parse_timestamp(r["updated_at"]),
            )
            for r in rows
        ]

    def count_companies(self) -> int:
        return int(self.scalar("SELECT COUNT(*) FROM companies;", default=0))


def _row_to_profile(row: sqlite3.Row) -> CompanyProfile:
    return CompanyProfile(
        company_id=row["company_id"],
        name=row["name"],
        industry_id=row["industry_id"],
        stage=row["stage"],
        size=row["size"],
        business_model=row["business_model"],
        focus_areas=load_list(row["focus_areas"]),
        maturity_score=row["maturity_score"],
    )
