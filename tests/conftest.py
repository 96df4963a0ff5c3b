"""Shared fakes for the store, the Elasticsearch client and the cache clock."""
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest
from elasticsearch import ConnectionError as ESConnectionError

from search_service.core.errors import StoreError
from search_service.services.query_cache import MemoryQueryCache
from search_service.services.search_index import FarmerSearchIndex

BASE_TIME = datetime(2024, 3, 1, 9, 0, 0)


def make_farmer(id, name, location=None, crops=None, size=None, email=None, days=0) -> Dict[str, Any]:
    return {
        "id": id,
        "name": name,
        "email": email or f"{name.lower().replace(' ', '.')}@farm.sg",
        "phone": None,
        "farm_location": location,
        "farm_size": size,
        "crop_types": crops,
        "created_at": BASE_TIME + timedelta(days=days),
    }


def _labels(farmer):
    crops = farmer["crop_types"] or []
    return json.loads(crops) if isinstance(crops, str) else crops


class FakeStore:
    """In-memory stand-in for PrimaryStore with the same filter semantics."""

    def __init__(self, farmers=None, grants=None):
        self.farmers: List[Dict[str, Any]] = list(farmers or [])
        self.grants: List[Dict[str, Any]] = list(grants or [])
        self.calls: List[str] = []
        self.fail = False

    def _record(self, name):
        self.calls.append(name)
        if self.fail:
            raise StoreError("connection refused")

    @staticmethod
    def _newest_first(rows):
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]), reverse=True)

    def _farmer_matches(self, f, query):
        if query.q and query.q not in f["name"].lower() and query.q not in (f["email"] or "").lower():
            return False
        if query.location and query.location not in (f["farm_location"] or "").lower():
            return False
        if query.crop_type and query.crop_type not in json.dumps(_labels(f)).lower():
            return False
        if query.farm_size and query.farm_size != str(f["farm_size"]):
            return False
        return True

    def _matching_farmers(self, query):
        return self._newest_first([f for f in self.farmers if self._farmer_matches(f, query)])

    def count_farmers(self, query):
        self._record("count_farmers")
        return len(self._matching_farmers(query))

    def find_farmers(self, query):
        self._record("find_farmers")
        return self._matching_farmers(query)[query.offset:query.offset + query.limit]

    def _matching_grants(self, query):
        owners = {f["id"]: f for f in self.farmers}
        rows = []
        for g in self.grants:
            owner = owners[g["farmer_id"]]
            if query.q and query.q not in (g["purpose"] or "").lower() and query.q not in owner["name"].lower():
                continue
            if query.grant_type and g["grant_type"] != query.grant_type:
                continue
            if query.status and g["status"] != query.status.value:
                continue
            rows.append({**g, "farmer_name": owner["name"], "farmer_email": owner["email"]})
        return self._newest_first(rows)

    def count_grants(self, query):
        self._record("count_grants")
        return len(self._matching_grants(query))

    def find_grants(self, query):
        self._record("find_grants")
        return self._matching_grants(query)[query.offset:query.offset + query.limit]

    def fetch_all_farmers(self):
        self._record("fetch_all_farmers")
        return sorted(self.farmers, key=lambda f: f["id"])

    def _distinct(self, name, values, term, limit):
        self._record(name)
        return sorted({v for v in values if v and term.lower() in v.lower()})[:limit]

    def distinct_locations(self, term, limit):
        return self._distinct("distinct_locations", [f["farm_location"] for f in self.farmers], term, limit)

    def distinct_crops(self, term, limit):
        crops = [c for f in self.farmers for c in _labels(f)]
        return self._distinct("distinct_crops", crops, term, limit)

    def distinct_names(self, term, limit):
        return self._distinct("distinct_names", [f["name"] for f in self.farmers], term, limit)

    def ping(self):
        self._record("ping")
        return True

    def close(self):
        pass


class FakeIndices:
    def __init__(self, client):
        self.client = client

    async def exists(self, index):
        self.client.check_reachable()
        return index in self.client.created

    async def create(self, index, mappings):
        self.client.created[index] = mappings


class FakeElasticsearch:
    """Just enough of AsyncElasticsearch for bulk indexing and completion."""

    def __init__(self):
        self.created: Dict[str, Any] = {}
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.indices = FakeIndices(self)
        self.fail_ids = set()
        self.bulk_calls = 0
        self.search_calls = 0
        self.reachable = True
        self.closed = False

    def check_reachable(self):
        if not self.reachable:
            raise ESConnectionError("Connection refused")

    async def ping(self):
        return self.reachable

    async def close(self):
        self.closed = True

    async def bulk(self, operations, refresh=None):
        self.bulk_calls += 1
        self.check_reachable()
        items = []
        for action, doc in zip(operations[0::2], operations[1::2]):
            doc_id = action["index"]["_id"]
            if doc_id in self.fail_ids:
                error = {"type": "mapper_parsing_exception", "reason": "bad document"}
                items.append({"index": {"_id": doc_id, "status": 400, "error": error}})
                continue
            result = "updated" if doc_id in self.docs else "created"
            self.docs[doc_id] = doc
            items.append({"index": {"_id": doc_id, "status": 200, "result": result}})
        return {"errors": any("error" in i["index"] for i in items), "items": items}

    async def search(self, index, suggest, source=None):
        self.search_calls += 1
        self.check_reachable()
        (name, body), = suggest.items()
        prefix = body["prefix"].lower()
        size = body["completion"]["size"]
        skip_duplicates = body["completion"].get("skip_duplicates", False)

        options, seen = [], set()
        for doc_id, doc in sorted(self.docs.items()):
            weight = doc["suggest"]["weight"]
            for text in doc["suggest"]["input"]:
                if not text.lower().startswith(prefix) or (skip_duplicates and text in seen):
                    continue
                seen.add(text)
                src = {k: doc.get(k) for k in (source or doc)}
                options.append({"text": text, "_id": doc_id, "_score": float(weight), "_source": src})
        return {"suggest": {name: [{"text": body["prefix"], "options": options[:size]}]}}


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def farmers():
    return [
        make_farmer(1, "Tan", "Lim Chu Kang", ["leafy greens"], size="2", days=0),
        make_farmer(2, "Siti Rahman", "Kranji", ["tomatoes", "chilli"], size="5", days=1),
        make_farmer(3, "Lim Wei", "Lim Chu Kang Lane 3", ["quail eggs"], size="2", days=2),
        make_farmer(4, "Kumar", "Sungei Tengah", None, size="10", days=3),
        make_farmer(5, "Ong", "Kranji", '["leafy greens", "herbs"]', size="5", days=4),
    ]


@pytest.fixture
def grants():
    return [
        {"id": 11, "farmer_id": 1, "grant_type": "equipment", "amount_requested": 15000,
         "purpose": "Hydroponic racks", "documents": [], "status": "pending",
         "created_at": BASE_TIME + timedelta(days=5)},
        {"id": 12, "farmer_id": 2, "grant_type": "training", "amount_requested": 3000,
         "purpose": "Irrigation course", "documents": [], "status": "approved",
         "created_at": BASE_TIME + timedelta(days=6)},
        {"id": 13, "farmer_id": 1, "grant_type": "equipment", "amount_requested": 8000,
         "purpose": "Cold room", "documents": [], "status": "approved",
         "created_at": BASE_TIME + timedelta(days=7)},
    ]


@pytest.fixture
def store(farmers, grants):
    return FakeStore(farmers, grants)


@pytest.fixture
def es_client():
    return FakeElasticsearch()


@pytest.fixture
def index(es_client):
    return FarmerSearchIndex(es_client, index_name="farmers")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryQueryCache(max_entries=100, clock=clock)
