# ============================================================================
# Main API Router
# ============================================================================
from fastapi import APIRouter

from app.api.v1 import mistakes, practices, questions, statistics

api_router = APIRouter()

# Question bank, custom library and answer verification
api_router.include_router(questions.router)
# Practice sessions and submissions
api_router.include_router(practices.router)
# Mistake ledger
api_router.include_router(mistakes.router)
# Study statistics
api_router.include_router(statistics.router)
