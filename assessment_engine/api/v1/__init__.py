"""
API v1 routes.
"""

from fastapi import APIRouter

from assessment_engine.api.v1 import attempts, generation, participants, question_sets, sharing

router = APIRouter()

# Generation before question sets so /question-sets/{id}/generate and /status resolve first
router.include_router(generation.router, tags=["Generation"])
router.include_router(question_sets.router, prefix="/question-sets", tags=["Question Sets"])
router.include_router(sharing.router, prefix="/question-sets", tags=["Sharing"])
router.include_router(participants.router, prefix="/participants", tags=["Participants"])
router.include_router(attempts.router, prefix="/attempts", tags=["Attempts"])
