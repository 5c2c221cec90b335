# -*- coding: utf-8 -*-
"""
Offline action queue for crew devices.

Status updates made without connectivity are appended to a JSON store and
replayed in order once the API is reachable again. The store also tracks
which shipments the crew member has already seen.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import requests

from ..core.phases import Status
from ..core.reconcile import project

log = logging.getLogger(__name__)

QUEUE_KEY = "offline_shipment_queue"
ACK_KEY = "acknowledgedShipments"

UPDATE_STATUS = "UPDATE_STATUS"

# 4xx answers that say nothing about the action itself
RETRYABLE_4XX = frozenset({401, 408, 429})


@dataclass
class ProcessResult:
    sent: list[dict] = field(default_factory=list)
    dropped: list[dict] = field(default_factory=list)
    remaining: int = 0

    @property
    def drained(self) -> bool:
        return self.remaining == 0


class OfflineQueue:
    def __init__(
        self,
        store_path: str | os.PathLike,
        base_url: str,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        self.store_path = Path(store_path)
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    # ---------- store ----------
    def _load(self) -> dict[str, Any]:
        try:
            with open(self.store_path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except ValueError:
            log.warning("offline store %s is corrupt, starting empty", self.store_path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.store_path.parent, prefix=".queue-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.store_path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def pending(self) -> list[dict]:
        items = self._load().get(QUEUE_KEY) or []
        return [i for i in items if isinstance(i, dict)]

    def _write_queue(self, items: list[dict]) -> None:
        data = self._load()
        data[QUEUE_KEY] = items
        self._save(data)

    # ---------- queue ----------
    def enqueue(self, action: dict) -> dict:
        """Persist an action; ``timestamp`` is milliseconds since the epoch."""
        item = dict(action)
        item.setdefault("type", UPDATE_STATUS)
        item["timestamp"] = int(time.time() * 1000)
        items = self.pending()
        items.append(item)
        self._write_queue(items)
        return item

    def queue_status_update(
        self, shipment_id: int, phase: str | Status, drop_id: int | None = None, remarks: str | None = None
    ) -> dict:
        return self.enqueue({
            "type": UPDATE_STATUS,
            "shipmentID": int(shipment_id),
            "phase": str(phase),
            "dropID": drop_id,
            "remarks": remarks,
        })

    def _send(self, item: dict) -> requests.Response:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        body = {"phase": item.get("phase"), "dropID": item.get("dropID"), "remarks": item.get("remarks")}
        return self.session.put(
            f"{self.base_url}/api/shipments/{item['shipmentID']}/status",
            json=body,
            headers=headers,
            timeout=self.timeout,
        )

    def process(self) -> ProcessResult:
        """
        Replay queued actions oldest first. 2xx removes the action, other
        4xx drop it as invalid; a network error or 5xx keeps it and stops,
        so later actions never overtake it.
        """
        items = self.pending()
        result = ProcessResult()
        idx = 0
        while idx < len(items):
            item = items[idx]
            if item.get("type") != UPDATE_STATUS or not item.get("shipmentID"):
                log.warning("dropping unknown offline action %r", item)
                result.dropped.append(item)
                idx += 1
                continue
            try:
                resp = self._send(item)
            except requests.RequestException as e:
                log.info("offline sync paused, network error: %s", e)
                break
            code = resp.status_code
            if 200 <= code < 300:
                result.sent.append(item)
            elif 400 <= code < 500 and code not in RETRYABLE_4XX:
                log.warning("offline action rejected (%s), dropped: %r", code, item)
                result.dropped.append(item)
            else:
                log.info("offline sync paused, server answered %s", code)
                break
            idx += 1

        rest = items[idx:]
        self._write_queue(rest)
        result.remaining = len(rest)
        return result

    def projected_status(
        self,
        shipment_id: int,
        server_status: str | Status | None,
        drop_ids: list[int] | None = None,
        server_drop_id: int | None = None,
    ) -> Status:
        """Server status with this shipment's queued updates applied on top.

        Pass the shipment's ordered ``drop_ids`` for multi-drop shipments so
        that store phases are compared per drop.
        """
        queued = [
            i
            for i in self.pending()
            if i.get("type") == UPDATE_STATUS and str(i.get("shipmentID")) == str(shipment_id)
        ]
        return project(server_status, queued, drop_ids, server_drop_id)

    # ---------- seen notifications ----------
    def acknowledged(self) -> set[int]:
        raw = self._load().get(ACK_KEY) or []
        out = set()
        for v in raw:
            try:
                out.add(int(v))
            except (TypeError, ValueError):
                continue
        return out

    def acknowledge(self, shipment_ids: Iterable[int]) -> None:
        data = self._load()
        seen = self.acknowledged() | {int(i) for i in shipment_ids}
        data[ACK_KEY] = sorted(seen)
        self._save(data)

    def unacknowledged(self, shipments: Iterable[dict]) -> list[dict]:
        seen = self.acknowledged()
        return [s for s in shipments if int(s.get("shipmentID", 0)) not in seen]
