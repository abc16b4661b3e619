"""
FridgeLingo Backend — API Routes Package
=========================================

Route Inventory:
    - quiz.py:    POST /api/quiz/generate                 (photo → flashcard)
    - fridge.py:  GET  /api/fridge/items                  (fridge listing)
                  POST /api/fridge/review/{word_id}        (mark as memorized)
                  GET  /api/fridge/quiz-by-word/{word_id}  (survival quiz)
    - stats.py:   GET  /api/stats                          (XP and title)
    - images.py:  GET  /api/images/{path}                  (stored photos)
    - health.py:  GET  /health                             (service health)

Routes stay thin: parse the request, call AcquisitionService, return the
schema. Errors are formatted by the global handlers in main.py.
"""
