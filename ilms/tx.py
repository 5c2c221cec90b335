# -*- coding: utf-8 -*-
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, TypeVar

from .extensions import db

T = TypeVar("T")


@contextmanager
def transaction():
    """Commit on normal exit, roll back on any exception and re-raise."""
    try:
        yield db.session
        db.session.commit()
    except BaseException:
        db.session.rollback()
        raise


def with_transaction(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    with transaction():
        return fn(*args, **kwargs)
