"""Queries and aggregations over the ``potion`` collection."""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List

from pymongo.database import Database

from database import create_document
from errors import ValidationError
from schemas import Potion

logger = logging.getLogger(__name__)

# Fields a caller may group by in search(). Array fields fan out.
GROUPABLE_FIELDS = {
    "vendor_id": False,
    "categories": True,
    "ingredients": True,
    "name": False,
    "tryDate": False,
}

# Numeric fields a metric may be computed on.
METRIC_FIELDS = ("price", "score", "ratings.strength", "ratings.flavor")

METRICS = {
    "avg": "$avg",
    "average": "$avg",
    "sum": "$sum",
    "count": "$sum",
}


def sanitize(doc: Dict) -> Dict:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


class RecordStore:
    def __init__(self, db: Database):
        self.collection = db["potion"]
        self.db = db

    def list_all(self) -> List[Dict[str, Any]]:
        return [sanitize(p) for p in self.collection.find()]

    def list_names(self) -> List[str]:
        return [p["name"] for p in self.collection.find({}, {"name": 1}) if "name" in p]

    def by_vendor(self, vendor_id: str) -> List[Dict[str, Any]]:
        return [sanitize(p) for p in self.collection.find({"vendor_id": vendor_id})]

    def by_price_range(self, min_price: float, max_price: float) -> List[Dict[str, Any]]:
        q = {"price": {"$gte": min_price, "$lte": max_price}}
        return [sanitize(p) for p in self.collection.find(q)]

    def distinct_category_count(self) -> int:
        return len(self.collection.distinct("categories"))

    def average_score_by_vendor(self) -> List[Dict[str, Any]]:
        return list(self.collection.aggregate([
            {"$group": {"_id": "$vendor_id", "averageScore": {"$avg": "$score"}}},
        ]))

    def average_score_by_category(self) -> List[Dict[str, Any]]:
        # a potion in N categories counts once in each of the N groups
        return list(self.collection.aggregate([
            {"$unwind": "$categories"},
            {"$group": {"_id": "$categories", "averageScore": {"$avg": "$score"}}},
        ]))

    def strength_flavor_ratio(self) -> List[Dict[str, Any]]:
        """Ratio of ratings.strength to ratings.flavor per potion; null when flavor is 0 or missing."""
        pipe = [
            {"$project": {
                "_id": 0,
                "name": 1,
                "ratio": {
                    "$cond": [
                        {"$eq": [{"$ifNull": ["$ratings.flavor", 0]}, 0]},
                        None,
                        {"$divide": ["$ratings.strength", "$ratings.flavor"]},
                    ]
                },
            }},
        ]
        return list(self.collection.aggregate(pipe))

    def search(self, group_by: str, metric: str, field: str) -> List[Dict[str, Any]]:
        errors = []
        if group_by not in GROUPABLE_FIELDS:
            errors.append({"field": "groupBy", "message": "groupBy must be one of: %s" % ", ".join(GROUPABLE_FIELDS)})
        if metric not in METRICS:
            errors.append({"field": "metric", "message": "metric must be one of: %s" % ", ".join(METRICS)})
        if field not in METRIC_FIELDS:
            errors.append({"field": "field", "message": "field must be one of: %s" % ", ".join(METRIC_FIELDS)})
        if errors:
            raise ValidationError("Invalid search parameters", errors=errors)

        accumulator = {METRICS[metric]: 1} if metric == "count" else {METRICS[metric]: "$" + field}
        pipe: List[Dict[str, Any]] = []
        if metric == "count":
            # only count documents that actually carry the field
            pipe.append({"$match": {field: {"$exists": True}}})
        if GROUPABLE_FIELDS[group_by]:
            pipe.append({"$unwind": "$" + group_by})
        pipe.append({"$group": {"_id": "$" + group_by, metric: accumulator}})
        return list(self.collection.aggregate(pipe))

    def create(self, potion: Potion) -> Dict[str, Any]:
        doc = potion.model_dump()
        # BSON has no date-only type
        if isinstance(doc.get("tryDate"), date) and not isinstance(doc["tryDate"], datetime):
            doc["tryDate"] = datetime.combine(doc["tryDate"], time.min, tzinfo=timezone.utc)
        saved = create_document(self.db, "potion", doc)
        logger.info("Created potion %s (%s)", saved.get("name"), saved["_id"])
        return sanitize(saved)
