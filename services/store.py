"""
Storage Ports
=============

The engine never talks to a database. Storage is injected as a
``TopicStore``: a read capability returning an owner's records and four
write commands. Adapters must apply an update-with-history-push atomically,
snapshotting the record as currently stored rather than trusting the
caller's copy of its history.
"""

from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import replace
from typing import Dict, List, Union

from services.ledger import TopicRecord, delete_cycle_at, snapshot_of
from utils.datetime_utils import now_local
from utils.logging_utils import get_logger

logger = get_logger(__name__)


class RecordNotFoundError(LookupError):
    """No record with the given id exists for this owner"""


class TopicStore(ABC):
    @abstractmethod
    def list_records(self, owner_uid: str) -> List[TopicRecord]:
        """All topic records in the owner's scope"""

    @abstractmethod
    def create_record(self, owner_uid: str, record: TopicRecord) -> TopicRecord:
        """Persist a new record; returns it as stored (the id may change)"""

    @abstractmethod
    def update_record_with_history_push(
        self, owner_uid: str, record: TopicRecord
    ) -> TopicRecord:
        """
        Push the stored current state onto history and overwrite it with the
        top-level fields of ``record``. ``record.history`` is not persisted:
        a caller holding a stale copy must not drop a concurrent cycle.
        """

    @abstractmethod
    def delete_record(self, owner_uid: str, record_id: str) -> None:
        pass

    @abstractmethod
    def delete_cycle(self, owner_uid: str, record_id: str, index: int) -> TopicRecord:
        """Remove one snapshot by position; out-of-range indices are a no-op"""


class InMemoryTopicStore(TopicStore):
    """Dictionary-backed store, keyed by owner then record id"""

    def __init__(self, seed: Dict[str, List[Union[TopicRecord, Dict]]] = None):
        """``seed`` maps owners to records or to their storage payloads"""
        self._records: Dict[str, Dict[str, TopicRecord]] = {}
        for owner_uid, records in (seed or {}).items():
            for record in records:
                if isinstance(record, dict):
                    record = TopicRecord.from_dict(record)
                self.create_record(owner_uid, record)

    def _scope(self, owner_uid: str) -> Dict[str, TopicRecord]:
        return self._records.setdefault(owner_uid, {})

    def _get(self, owner_uid: str, record_id: str) -> TopicRecord:
        try:
            return self._scope(owner_uid)[record_id]
        except KeyError:
            raise RecordNotFoundError(record_id) from None

    def list_records(self, owner_uid: str) -> List[TopicRecord]:
        return [deepcopy(record) for record in self._scope(owner_uid).values()]

    def create_record(self, owner_uid: str, record: TopicRecord) -> TopicRecord:
        stored = replace(deepcopy(record), owner_uid=owner_uid)
        self._scope(owner_uid)[stored.id] = stored
        logger.debug("Created record %s for %s", stored.id, owner_uid)
        return deepcopy(stored)

    def update_record_with_history_push(
        self, owner_uid: str, record: TopicRecord
    ) -> TopicRecord:
        current = self._get(owner_uid, record.id)
        snapshot = snapshot_of(current, record.last_revision or now_local())
        stored = replace(
            deepcopy(record),
            owner_uid=owner_uid,
            history=list(current.history) + [snapshot],
        )
        self._scope(owner_uid)[stored.id] = stored
        logger.debug("Updated record %s (%d cycles)", stored.id, stored.cycles)
        return deepcopy(stored)

    def delete_record(self, owner_uid: str, record_id: str) -> None:
        self._get(owner_uid, record_id)
        del self._scope(owner_uid)[record_id]
        logger.debug("Deleted record %s for %s", record_id, owner_uid)

    def delete_cycle(self, owner_uid: str, record_id: str, index: int) -> TopicRecord:
        updated = delete_cycle_at(self._get(owner_uid, record_id), index)
        self._scope(owner_uid)[record_id] = updated
        return deepcopy(updated)
