"""
Database Index Definitions
===========================

Indexes backing the analyst directory, the prediction ledger, and the
identity provider's uniqueness constraints.

Apply with:
    cd backend && python -m db.indexes --apply
"""

import logging
from typing import Dict, List

from pymongo import ASCENDING, DESCENDING, IndexModel

logger = logging.getLogger(__name__)


# ============================================================================
# INDEX DEFINITIONS
# ============================================================================

def get_users_indexes() -> List[IndexModel]:
    """User profile indexes"""
    return [
        IndexModel([("uid", ASCENDING)], unique=True, name="uid_unique"),
        IndexModel([("email", ASCENDING)], name="email"),
        # Analyst directory: totalPredictions >= 1, accuracy desc, totalPredictions desc
        IndexModel(
            [
                ("stats.accuracy", DESCENDING),
                ("stats.totalPredictions", DESCENDING),
            ],
            name="directory_ranking",
        ),
    ]


def get_predictions_indexes() -> List[IndexModel]:
    """Prediction ledger indexes"""
    return [
        IndexModel([("createdAt", DESCENDING)], name="created_at_desc"),
        IndexModel(
            [("userId", ASCENDING), ("createdAt", DESCENDING)],
            name="user_created_at",
        ),
    ]


def get_identities_indexes() -> List[IndexModel]:
    """Identity provider credential indexes"""
    return [
        IndexModel([("uid", ASCENDING)], unique=True, name="uid_unique"),
        IndexModel([("email", ASCENDING)], unique=True, name="email_unique"),
    ]


def get_sessions_indexes() -> List[IndexModel]:
    """Identity provider session indexes"""
    return [
        IndexModel([("token", ASCENDING)], unique=True, name="token_unique"),
        IndexModel([("uid", ASCENDING)], name="uid"),
    ]


# ============================================================================
# INDEX APPLICATION
# ============================================================================

INDEX_DEFINITIONS: Dict[str, List[IndexModel]] = {
    "users": get_users_indexes(),
    "predictions": get_predictions_indexes(),
    "identities": get_identities_indexes(),
    "sessions": get_sessions_indexes(),
}


def apply_all_indexes(database, drop_existing: bool = False) -> Dict[str, List[str]]:
    """
    Apply all index definitions to database.

    Args:
        database: pymongo Database instance
        drop_existing: If True, drop existing indexes before creating new ones
                      (DANGEROUS - use only for fresh deploys)

    Returns:
        Created index names per collection
    """
    created: Dict[str, List[str]] = {}

    for collection_name, indexes in INDEX_DEFINITIONS.items():
        collection = database[collection_name]

        if drop_existing:
            logger.warning(f"Dropping existing indexes on {collection_name}")
            collection.drop_indexes()

        created[collection_name] = collection.create_indexes(indexes)
        logger.info(f"Indexes ready on {collection_name}: {created[collection_name]}")

    return created


def list_all_indexes(database) -> None:
    """Log all existing indexes"""
    for collection_name in INDEX_DEFINITIONS.keys():
        logger.info(f"Collection: {collection_name}")

        for idx in database[collection_name].list_indexes():
            suffix = " (UNIQUE)" if idx.get("unique") else ""
            logger.info(f"  - {idx['name']}: {idx.get('key', {})}{suffix}")


# ============================================================================
# CLI
# ============================================================================

if __name__ == "__main__":
    import argparse

    from db.mongo import db

    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Manage database indexes")
    parser.add_argument("--apply", action="store_true", help="Apply all indexes")
    parser.add_argument("--list", action="store_true", help="List existing indexes")
    parser.add_argument("--drop", action="store_true", help="Drop existing indexes before applying (DANGEROUS)")

    args = parser.parse_args()

    if args.apply:
        apply_all_indexes(db, drop_existing=args.drop)
    elif args.list:
        list_all_indexes(db)
    else:
        parser.print_help()
