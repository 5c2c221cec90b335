# -*- coding: utf-8 -*-
"""
Redis helpers: active-session cache and GET response cache.

The client is built once in ``create_app`` and kept in
``app.extensions["redis"]`` (``None`` disables caching). Any Redis failure
is logged and treated as a cache miss; the database stays authoritative.
"""
from __future__ import annotations

import logging
from functools import wraps

import redis
from flask import current_app, make_response, request
from flask_login import current_user

log = logging.getLogger(__name__)

SESSION_KEY = "session:{uid}"


def make_redis(config) -> redis.Redis | None:
    host = config.get("REDIS_HOST")
    if not host:
        return None
    return redis.Redis(
        host=host,
        port=int(config.get("REDIS_PORT") or 6379),
        password=config.get("REDIS_PASSWORD") or None,
        socket_timeout=2,
        socket_connect_timeout=2,
        decode_responses=True,
    )


def client():
    return current_app.extensions.get("redis")


# ---------- sessions ----------
def get_session_token(user_id: int) -> str | None:
    r = client()
    if r is None:
        return None
    try:
        return r.get(SESSION_KEY.format(uid=user_id))
    except redis.RedisError as e:
        log.warning("redis unavailable, session lookup falls back to db: %s", e)
        return None


def set_session_token(user_id: int, token: str, ttl: int) -> None:
    r = client()
    if r is None:
        return
    try:
        r.setex(SESSION_KEY.format(uid=user_id), ttl, token)
    except redis.RedisError as e:
        log.warning("redis unavailable, session not cached: %s", e)


def drop_session_token(user_id: int) -> None:
    r = client()
    if r is None:
        return
    try:
        r.delete(SESSION_KEY.format(uid=user_id))
    except redis.RedisError as e:
        log.warning("redis unavailable, session key not removed: %s", e)


# ---------- responses ----------
def _cache_key(vary=None) -> str:
    uid = getattr(current_user, "id", None) if getattr(current_user, "is_authenticated", False) else None
    key = f"cache:{request.full_path.rstrip('?')}:u{uid or 0}"
    return f"{key}:{vary()}" if vary is not None else key


def cached(ttl: int | None = None, vary=None):
    """Cache successful JSON GET responses per URL and caller.

    ``vary`` returns an extra key part for responses that depend on more
    than the request, such as the current date.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            r = client()
            if r is None or request.method != "GET":
                return f(*args, **kwargs)
            key = _cache_key(vary)
            try:
                hit = r.get(key)
            except redis.RedisError as e:
                log.warning("redis unavailable, cache bypassed: %s", e)
                return f(*args, **kwargs)
            if hit is not None:
                return current_app.response_class(hit, mimetype="application/json")

            resp = make_response(f(*args, **kwargs))
            if 200 <= resp.status_code < 300 and resp.is_json:
                try:
                    r.setex(key, ttl or current_app.config["CACHE_TTL"], resp.get_data(as_text=True))
                except redis.RedisError as e:
                    log.warning("redis unavailable, response not cached: %s", e)
            return resp
        return wrapper
    return decorator


def clear_cache(prefix: str) -> int:
    """Delete cached responses whose URL starts with ``prefix`` (e.g. '/api/rates')."""
    r = client()
    if r is None:
        return 0
    try:
        keys = list(r.scan_iter(match=f"cache:{prefix}*"))
        if keys:
            r.delete(*keys)
        log.debug("cache cleared [%s]: %d keys", prefix, len(keys))
        return len(keys)
    except redis.RedisError as e:
        log.warning("redis unavailable, cache not cleared [%s]: %s", prefix, e)
        return 0
