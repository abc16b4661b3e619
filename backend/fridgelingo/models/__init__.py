"""ORM models. Importing this package registers every table with Base.metadata."""

from fridgelingo.models.vocabulary import Concept, LearningProgress, Translation

__all__ = ["Concept", "LearningProgress", "Translation"]
