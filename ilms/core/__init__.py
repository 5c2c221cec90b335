from .phases import Status, Track, WAREHOUSE_PHASES, STORE_PHASES, STATUS_ORDER  # noqa: F401
from .classifier import Category, classify  # noqa: F401
from .reconcile import resolve_status  # noqa: F401
