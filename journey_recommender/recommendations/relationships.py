"""
Relationship resolver: builds the prerequisite / dependent / related edge
list around a step, with bounded recursive expansion.

Edges at depth 1
----------------
  prerequisite : source = each prerequisite of the step, target = step
  dependent    : source = step, target = each step listing it as prerequisite
  related      : source = step, target = each co-completed step whose
                 similarity >= ``min_similarity`` (self-matches dropped)

Expansion (depth > 1)
---------------------
Every distinct neighbour id (excluding the origin) is resolved at
``depth - 1`` and merged in. While merging, an edge is dropped when its
``(source, target)`` pair is already present or when either endpoint is the
origin step.

With ``visited_guard`` on (the default), expansion runs level by level: each
node within ``depth - 1`` hops is expanded exactly once, at its shallowest
hop, so no edge within range is lost however the graph is wired. With it
off, expansion recurses depth-first and only origin exclusion bounds the
work, which grows exponentially with depth on dense graphs; keep ``depth``
small in that mode.

A failure while expanding a nested node is logged and that node contributes
no edges. Failures resolving the origin itself propagate to the caller.
"""

from __future__ import annotations

import logging

from journey_recommender.models.recommendation import StepRelationship
from journey_recommender.recommendations.sources import StepDataSource
from journey_recommender.taxonomy.journey_taxonomy import RelationshipType

logger = logging.getLogger(__name__)


class RelationshipResolver:
    """Resolve step relationship edges through a ``StepDataSource``.

    Attributes:
        source:         Data accessor.
        min_similarity: Threshold for ``related`` edges.
        visited_guard:  Expand each node at most once per top-level call.
    """

    def __init__(
        self,
        source: StepDataSource,
        min_similarity: float = 0.3,
        visited_guard: bool = True,
    ) -> None:
        self.source = source
        self.min_similarity = min_similarity
        self.visited_guard = visited_guard

    def resolve(self, step_id: str, depth: int = 1) -> list[StepRelationship]:
        """Return the relationship edges around ``step_id`` up to ``depth`` hops.

        Args:
            step_id: The origin step.
            depth:   Hop count; values below 1 are treated as 1.

        Returns:
            Edge list, direct edges first, then merged nested edges.

        Raises:
            DataAccessError: If the origin step's own edges cannot be read.
        """
        depth = max(depth, 1)
        if self.visited_guard:
            return self._resolve_by_level(step_id, depth)
        return self._resolve(step_id, depth)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _resolve_by_level(self, origin: str, depth: int) -> list[StepRelationship]:
        """Breadth-first expansion; every node is expanded once, at its shallowest hop."""
        relationships = self.direct_relationships(origin)
        seen_pairs = {rel.pair for rel in relationships}
        expanded = {origin}
        frontier = _neighbours(origin, relationships)

        for _ in range(depth - 1):
            next_frontier: list[str] = []
            for node in frontier:
                if node in expanded:
                    continue
                expanded.add(node)
                try:
                    nested = self.direct_relationships(node)
                except Exception as exc:
                    logger.warning(
                        "Skipping relationships of '%s' (expanding '%s'): %s",
                        node, origin, exc,
                    )
                    continue

                for rel in nested:
                    if rel.pair in seen_pairs or origin in rel.pair:
                        continue
                    relationships.append(rel)
                    seen_pairs.add(rel.pair)
                queued = expanded.union(frontier, next_frontier)
                next_frontier.extend(o for o in _neighbours(node, nested) if o not in queued)
            frontier = next_frontier

        return relationships

    def _resolve(self, step_id: str, depth: int) -> list[StepRelationship]:
        relationships = self.direct_relationships(step_id)
        if depth <= 1:
            return relationships

        seen_pairs = {rel.pair for rel in relationships}
        for neighbour in _neighbours(step_id, relationships):
            try:
                nested = self._resolve(neighbour, depth - 1)
            except Exception as exc:
                logger.warning(
                    "Skipping relationships of '%s' (reached from '%s'): %s",
                    neighbour, step_id, exc,
                )
                continue

            for rel in nested:
                if rel.pair in seen_pairs:
                    continue
                if rel.source_id == step_id or rel.target_id == step_id:
                    continue
                relationships.append(rel)
                seen_pairs.add(rel.pair)

        return relationships

    def direct_relationships(self, step_id: str) -> list[StepRelationship]:
        """Depth-1 edges of ``step_id``: prerequisites, dependents, related."""
        relationships: list[StepRelationship] = []

        prereq_ids = self.source.fetch_prerequisite_ids(step_id)
        if prereq_ids:
            names = {ref.id: ref.name for ref in self.source.fetch_steps_by_id(prereq_ids)}
            for prereq_id in prereq_ids:
                relationships.append(
                    StepRelationship(
                        source_id=prereq_id,
                        source_name=names.get(prereq_id),
                        target_id=step_id,
                        relationship_type=RelationshipType.PREREQUISITE,
                    )
                )

        for dep in self.source.fetch_dependents(step_id):
            relationships.append(
                StepRelationship(
                    source_id=step_id,
                    target_id=dep.id,
                    target_name=dep.name,
                    relationship_type=RelationshipType.DEPENDENT,
                )
            )

        for rel in self.source.fetch_related_steps(step_id, self.min_similarity):
            if rel.step_id == step_id:
                continue
            relationships.append(
                StepRelationship(
                    source_id=step_id,
                    target_id=rel.step_id,
                    target_name=rel.step_name,
                    relationship_type=RelationshipType.RELATED,
                )
            )

        return relationships


def _neighbours(step_id: str, relationships: list[StepRelationship]) -> list[str]:
    """Distinct other endpoints of ``relationships``, in edge order."""
    neighbours: list[str] = []
    for rel in relationships:
        other = rel.other_end(step_id)
        if other != step_id and other not in neighbours:
            neighbours.append(other)
    return neighbours
