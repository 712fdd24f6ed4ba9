# record store: primary mongodb collection with a per-owner local fallback
#
# every write returns a Persisted result tagged with where it landed:
#   remote  -> mongodb accepted the call
#   local   -> mongodb was unavailable, the owner's local bucket was written instead
#
# every read reconciles both sources:
#   1. query mongodb (skipped if unavailable)
#   2. read the owner's local bucket
#   3. merge by id, remote copy wins on conflict
#   4. sort newest first, then apply the limit

import logging
from typing import Literal, Optional

from pydantic import BaseModel
from pymongo.errors import PyMongoError

from app.services.db import Database
from app.services.errors import RecordNotFound, StoreUnavailable
from app.services.fallback_store import LocalStore

logger = logging.getLogger(__name__)

StorageSource = Literal["remote", "local"]


class Persisted(BaseModel):
    """a record together with the store that holds it"""
    record: Optional[dict] = None
    source: StorageSource


def _matches(record: dict, query: dict) -> bool:
    """equality match used to filter local bucket records"""
    return all(record.get(key) == value for key, value in query.items())


class RecordStore:
    """crud over one collection, scoped by owner (user_id)"""

    def __init__(self, db: Database, local: LocalStore, collection: str, id_field: str):
        self.db = db
        self.local = local
        self.collection = collection
        self.id_field = id_field

    # remote calls: any driver error becomes StoreUnavailable

    def _remote(self):
        return getattr(self.db, self.collection)

    async def _remote_find(self, query: dict) -> list[dict]:
        try:
            cursor = self._remote().find(query, {"_id": 0}).sort("created_at", -1)
            docs = []
            async for doc in cursor:
                doc = dict(doc)
                doc.pop("_id", None)
                docs.append(doc)
            return docs
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e

    async def _remote_find_one(self, query: dict) -> Optional[dict]:
        try:
            doc = await self._remote().find_one(query, {"_id": 0})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        if doc is None:
            return None
        doc = dict(doc)
        doc.pop("_id", None)
        return doc

    def _warn_fallback(self, operation: str, error: Exception):
        logger.warning(
            f"Primary store unavailable for {self.collection}.{operation}, "
            f"using local fallback: {error}"
        )

    def _owner_query(self, owner_id: str, record_id: str) -> dict:
        return {"user_id": owner_id, self.id_field: record_id}

    # reads

    async def list_records(
        self,
        owner_id: str,
        where: Optional[dict] = None,
        limit: Optional[int] = None,
    ) -> list[Persisted]:
        """list the owner's records from both stores, newest first"""
        query = {"user_id": owner_id, **(where or {})}

        remote_docs: list[dict] = []
        try:
            # no remote limit: local records may interleave with remote ones
            remote_docs = await self._remote_find(query)
        except StoreUnavailable as e:
            self._warn_fallback("list", e)

        local_docs = [
            r for r in await self.local.read_bucket(self.collection, owner_id)
            if _matches(r, query)
        ]

        merged: dict[str, Persisted] = {}
        for doc in local_docs:
            if doc.get(self.id_field):
                merged[doc[self.id_field]] = Persisted(record=doc, source="local")
        for doc in remote_docs:
            if doc.get(self.id_field):
                merged[doc[self.id_field]] = Persisted(record=doc, source="remote")

        items = sorted(
            merged.values(),
            key=lambda p: str(p.record.get("created_at", "")),
            reverse=True,
        )
        if limit:
            items = items[:limit]
        return items

    async def get(self, owner_id: str, record_id: str) -> Persisted:
        """fetch a single record, remote first then the local bucket"""
        query = self._owner_query(owner_id, record_id)
        try:
            doc = await self._remote_find_one(query)
            if doc is not None:
                return Persisted(record=doc, source="remote")
        except StoreUnavailable as e:
            self._warn_fallback("get", e)

        for doc in await self.local.read_bucket(self.collection, owner_id):
            if _matches(doc, query):
                return Persisted(record=doc, source="local")

        raise RecordNotFound(self.collection, record_id)

    # writes

    async def create(self, record: dict) -> Persisted:
        """insert a record; on primary failure append it to the owner's bucket"""
        try:
            try:
                # insert a copy: the driver adds _id to the dict it is given
                await self._remote().insert_one(dict(record))
            except PyMongoError as e:
                raise StoreUnavailable(str(e)) from e
            logger.info(f"Created {self.collection} record {record[self.id_field]}")
            return Persisted(record=record, source="remote")
        except StoreUnavailable as e:
            self._warn_fallback("create", e)

        await self.local.modify_bucket(
            self.collection, record["user_id"], lambda records: records.append(record)
        )
        logger.info(f"Created {self.collection} record {record[self.id_field]} in local store")
        return Persisted(record=record, source="local")

    async def update(self, owner_id: str, record_id: str, fields: dict) -> Persisted:
        """overwrite fields of an existing record wherever it lives"""
        query = self._owner_query(owner_id, record_id)
        try:
            try:
                result = await self._remote().update_one(query, {"$set": fields})
            except PyMongoError as e:
                raise StoreUnavailable(str(e)) from e
            if result.matched_count:
                doc = await self._remote_find_one(query)
                logger.info(f"Updated {self.collection} record {record_id}")
                return Persisted(record=doc, source="remote")
        except StoreUnavailable as e:
            self._warn_fallback("update", e)

        # not in mongodb (or mongodb is down): try the local bucket
        def apply(records: list[dict]) -> Optional[dict]:
            for index, doc in enumerate(records):
                if _matches(doc, query):
                    records[index] = {**doc, **fields}
                    return records[index]
            return None

        updated = await self.local.modify_bucket(self.collection, owner_id, apply)
        if updated is None:
            raise RecordNotFound(self.collection, record_id)

        logger.info(f"Updated {self.collection} record {record_id} in local store")
        return Persisted(record=updated, source="local")

    async def delete(self, owner_id: str, record_id: str) -> Persisted:
        """remove a record from both stores; a missing id is a no-op"""
        query = self._owner_query(owner_id, record_id)
        source: StorageSource = "local"
        try:
            try:
                await self._remote().delete_one(query)
            except PyMongoError as e:
                raise StoreUnavailable(str(e)) from e
            source = "remote"
        except StoreUnavailable as e:
            self._warn_fallback("delete", e)

        # always purge the local copy so a merged read cannot resurrect it
        def purge(records: list[dict]) -> None:
            records[:] = [doc for doc in records if not _matches(doc, query)]

        await self.local.modify_bucket(self.collection, owner_id, purge)

        logger.info(f"Deleted {self.collection} record {record_id} ({source})")
        return Persisted(source=source)


def get_patient_store(db: Database, local: LocalStore) -> RecordStore:
    return RecordStore(db, local, collection="patients", id_field="patient_id")


def get_plan_store(db: Database, local: LocalStore) -> RecordStore:
    return RecordStore(db, local, collection="therapy_plans", id_field="plan_id")
