"""
FridgeLingo Backend — Services Layer
=====================================

What:  The vocabulary acquisition and progress pipeline.

Service Inventory:
    - llm_base:             LabelDetector / TextGenerator contracts, JSON parsing
    - GeminiService:        both contracts on Google Gemini, behind a circuit breaker
    - LabelResolver:        raw labels → one food label (AI chooser, denylist fallback)
    - VocabularyStore:      lookup-or-create for concepts and translations
    - ContentEnricher:      translation, definition, sentence, emoji (once per language)
    - ProgressTracker:      proficiency, reviews, freshness
    - QuizGenerator:        four-option survival quiz
    - StatsAggregator:      XP, title ladder, freshness counts
    - ImageStore:           upload validation and photo storage
    - AcquisitionService:   composes the above for the routes
"""
