"""
hackjudge/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from hackjudge.routes import judge_queue

router = APIRouter()

router.include_router(judge_queue.router)
