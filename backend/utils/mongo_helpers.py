"""
MongoDB Helper Utilities
Functions to clean MongoDB documents for JSON serialization
"""
from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId

from utils.timezone import format_utc


def sanitize_mongo_doc(doc: Any) -> Any:
    """
    Recursively remove MongoDB-specific fields (_id, ObjectId) from documents
    to make them JSON serializable. Datetimes become UTC ISO strings.

    Args:
        doc: MongoDB document, list, dict, or primitive value

    Returns:
        Sanitized version safe for JSON serialization
    """
    if doc is None:
        return None

    if isinstance(doc, ObjectId):
        return str(doc)

    if isinstance(doc, datetime):
        return format_utc(doc)

    if isinstance(doc, dict):
        return {
            key: sanitize_mongo_doc(value)
            for key, value in doc.items()
            if key != "_id"
        }

    if isinstance(doc, (list, tuple)):
        return [sanitize_mongo_doc(item) for item in doc]

    return doc


def sanitize_mongo_list(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sanitize a list of MongoDB documents"""
    return [sanitize_mongo_doc(doc) for doc in docs]


def with_document_id(doc: Dict[str, Any], id_field: str = "id") -> Dict[str, Any]:
    """
    Copy a raw document, exposing its Mongo _id as a string under `id_field`.

    Fields already present under `id_field` are left untouched.
    """
    out = dict(doc)
    raw_id = out.pop("_id", None)
    if raw_id is not None and id_field not in out:
        out[id_field] = str(raw_id)
    return out
