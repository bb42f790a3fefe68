import os
import redis.asyncio as redis

REDIS_URL = os.getenv("REDIS_URL")  # optional; per-user locks fall back to in-process locks

redis_client = redis.from_url(REDIS_URL, decode_responses=True) if REDIS_URL else None
