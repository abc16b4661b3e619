"""
FridgeLingo Backend — Application Package
==========================================

What: Turns a photo of a food item into a language-learning flashcard and
      tracks how "fresh" each learned word is in the learner's fridge.
Who:  Imported by uvicorn (`fridgelingo.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Acquisition Pipeline)   │  ← label resolution, enrichment,
    │                                     │    progress, quiz, stats
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services are assembled once by `fridgelingo.container.build_container`
    and reach the routes through FastAPI dependencies.
"""

__version__ = "1.0.0"
