# -*- coding: utf-8 -*-
from .offline_queue import OfflineQueue, ProcessResult  # noqa: F401
