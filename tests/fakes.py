"""
In-memory stand-ins for the document store and the identity provider.

The collection double covers the subset of the pymongo async collection API
the services call: find_one, find().to_list, insert_one, update_one with
$set / $setOnInsert / $push, and create_index.
"""
import copy
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError

from udyam_kpi.core.exceptions import NotFoundError
from udyam_kpi.core.firebase import IdentityUser


def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        actual = document.get(key)
        if isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


class InMemoryCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self.documents = documents

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        if length is None:
            return list(self.documents)
        return list(self.documents[:length])


class InMemoryCollection:
    def __init__(self, name: str):
        self.name = name
        self.documents: Dict[Any, Dict[str, Any]] = {}
        self.indexes: List[str] = []
        self.fail_with: Optional[Exception] = None

    def _check_failure(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def create_index(self, keys, name=None, unique=False):
        self.indexes.append(name)
        return name

    async def find_one(self, query: Dict[str, Any]):
        self._check_failure()
        for document in self.documents.values():
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query: Optional[Dict[str, Any]] = None) -> InMemoryCursor:
        self._check_failure()
        query = query or {}
        return InMemoryCursor(
            [copy.deepcopy(doc) for doc in self.documents.values() if _matches(doc, query)]
        )

    async def insert_one(self, document: Dict[str, Any]):
        self._check_failure()
        if document["_id"] in self.documents:
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}", code=11000)
        self.documents[document["_id"]] = copy.deepcopy(document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        self._check_failure()
        for document in self.documents.values():
            if _matches(document, query):
                self._apply(document, update, inserting=False)
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)

        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

        document = {key: value for key, value in query.items() if not isinstance(value, dict)}
        self._apply(document, update, inserting=True)
        self.documents[document["_id"]] = document
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=document["_id"])

    @staticmethod
    def _apply(document: Dict[str, Any], update: Dict[str, Any], inserting: bool):
        if inserting:
            document.update(copy.deepcopy(update.get("$setOnInsert", {})))
        document.update(copy.deepcopy(update.get("$set", {})))
        for key, value in update.get("$push", {}).items():
            document.setdefault(key, []).append(copy.deepcopy(value))


class InMemoryDatabase:
    def __init__(self):
        self.collections: Dict[str, InMemoryCollection] = {}

    def __getitem__(self, name: str) -> InMemoryCollection:
        if name not in self.collections:
            self.collections[name] = InMemoryCollection(name)
        return self.collections[name]


class FakeIdentityProvider:
    """Identity provider double keyed by uid"""

    def __init__(self):
        self.users: Dict[str, IdentityUser] = {}
        self.revoked: List[str] = []

    def add_user(self, uid: str, email: Optional[str] = None, display_name: Optional[str] = None, role: Optional[str] = None):
        claims = {"role": role} if role else {}
        self.users[uid] = IdentityUser(uid=uid, email=email, display_name=display_name, custom_claims=claims)
        return self.users[uid]

    async def list_users(self, max_results: int) -> List[IdentityUser]:
        return list(self.users.values())[:max_results]

    async def get_user(self, uid: str) -> IdentityUser:
        if uid not in self.users:
            raise NotFoundError(f"User {uid} not found")
        return self.users[uid]

    async def set_custom_claims(self, uid: str, claims: Dict[str, Any]):
        user = await self.get_user(uid)
        user.custom_claims = dict(claims)

    async def revoke_sessions(self, uid: str):
        await self.get_user(uid)
        self.revoked.append(uid)
