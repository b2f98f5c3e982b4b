"""
Recommendation layer: scoring, relationships, path ordering and the engine.

Modules:
  sources.py       -- ``StepDataSource`` accessor contract and its errors
  factors.py       -- eight pure relevance factor functions
  scorer.py        -- aggregates factors into scores and reasoning
  ranker.py        -- sort, truncate, map to ``StepRecommendation``
  relationships.py -- prerequisite / dependent / related edge resolver
  path.py          -- budgeted selection and dependency-respecting ordering
  events.py        -- fire-and-forget analytics event sinks
  engine.py        -- ``RecommendationEngine`` public operations
  assistant.py     -- step assistant suggestions, resources and answers
"""
