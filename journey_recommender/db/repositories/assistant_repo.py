"""
Repository for step assistant content: ``step_resources`` and ``knowledge_base``.
"""

from __future__ import annotations

import logging

from journey_recommender.db.repositories.base import BaseRepository
from journey_recommender.models.assistant import KnowledgeEntry, StepResource

logger = logging.getLogger(__name__)


class AssistantContentRepository(BaseRepository):
    """Read/write access to step resources and knowledge-base entries."""

    def upsert_resource(self, resource: StepResource) -> None:
        self.execute(
            """
            INSERT INTO step_resources (
                step_id, title, description, url, resource_type, relevance_score
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(step_id, url) DO UPDATE SET
                title           = excluded.title,
                description     = excluded.description,
                resource_type   = excluded.resource_type,
                relevance_score = excluded.relevance_score;
            """,
            (
                resource.step_id,
                resource.title,
                resource.description,
                resource.url,
                resource.resource_type,
                resource.relevance_score,
            ),
        )

    def get_resources(self, step_id: str) -> list[StepResource]:
        """Resources for a step, most relevant first."""
        rows = self.fetchall(
            """
            SELECT * FROM step_resources WHERE step_id = ?
            ORDER BY relevance_score DESC, resource_id;
            """,
            (step_id,),
        )
        return [
            StepResource(
                step_id=r["step_id"],
                title=r["title"],
                description=r["description"],
                url=r["url"],
                resource_type=r["resource_type"],
                relevance_score=r["relevance_score"],
            )
            for r in rows
        ]

    def upsert_knowledge(self, step_id: str, entry: KnowledgeEntry) -> None:
        self.execute(
            """
            INSERT INTO knowledge_base (step_id, content, source) VALUES (?, ?, ?)
            ON CONFLICT(step_id, source) DO UPDATE SET content = excluded.content;
            """,
            (step_id, entry.content, entry.source),
        )

    def get_knowledge(self, step_id: str) -> list[KnowledgeEntry]:
        rows = self.fetchall(
            "SELECT content, source FROM knowledge_base WHERE step_id = ? ORDER BY entry_id;",
            (step_id,),
        )
        return [KnowledgeEntry(content=r["content"], source=r["source"]) for r in rows]
