"""
hackjudge/limiter.py
Shared slowapi limiter. Requests are keyed by judge email when present so
judges behind one venue NAT do not share a bucket.
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def judge_or_remote_address(request: Request) -> str:
    email = request.headers.get("X-Judge-Email", "").strip().lower()
    if email:
        return f"judge:{email}"
    return get_remote_address(request)


limiter = Limiter(key_func=judge_or_remote_address)
