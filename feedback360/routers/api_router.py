from fastapi import APIRouter
from feedback360.routers import scores

# Centralized API router hub; main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(scores.router, tags=["Scores"])
