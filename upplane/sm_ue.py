"""Per-UE bookkeeping of PDU sessions and SDM subscriptions."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace


@dataclass
class UeData:
    """Session count and SDM subscription ID of one UE."""

    pdu_session_count: int = 0
    sdm_subscription_id: str = ""


class Ues:
    """Thread-safe table of UE data keyed by SUPI."""

    def __init__(self) -> None:
        self._ues: dict[str, UeData] = {}
        self._lock = threading.Lock()

    def increment_pdu_session_count(self, ue_id: str) -> None:
        with self._lock:
            self._ues.setdefault(ue_id, UeData()).pdu_session_count += 1

    def decrement_pdu_session_count(self, ue_id: str) -> None:
        """Decrease the count; never goes below zero."""
        with self._lock:
            data = self._ues.get(ue_id)
            if data is not None and data.pdu_session_count > 0:
                data.pdu_session_count -= 1

    def set_subscription_id(self, ue_id: str, subscription_id: str) -> None:
        with self._lock:
            self._ues.setdefault(ue_id, UeData()).sdm_subscription_id = subscription_id

    def subscription_id(self, ue_id: str) -> str:
        """Return the SDM subscription ID, or an empty string for an unknown UE."""
        with self._lock:
            data = self._ues.get(ue_id)
            return data.sdm_subscription_id if data else ""

    def ue_data(self, ue_id: str) -> UeData:
        """Return a copy of the UE's data; an unknown UE gives empty data."""
        with self._lock:
            data = self._ues.get(ue_id)
            return replace(data) if data else UeData()

    def delete_ue(self, ue_id: str) -> None:
        with self._lock:
            self._ues.pop(ue_id, None)

    def ue_exists(self, ue_id: str) -> bool:
        with self._lock:
            return ue_id in self._ues

    def is_last_pdu_session(self, ue_id: str) -> bool:
        """Return True if the UE has exactly one PDU session."""
        with self._lock:
            data = self._ues.get(ue_id)
            return data is not None and data.pdu_session_count == 1

    def pdu_session_count(self, ue_id: str) -> int:
        with self._lock:
            data = self._ues.get(ue_id)
            return data.pdu_session_count if data else 0