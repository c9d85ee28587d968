"""
MongoDB Database Connection

Uses existing MongoDB connection from db.mongo
"""
from db.mongo import client, db


class Database:
    """MongoDB database manager - wraps existing db.mongo connection"""

    def __init__(self, database=None, mongo_client=None):
        self.db = database if database is not None else db
        self.client = mongo_client if mongo_client is not None else client

    @property
    def users(self):
        return self.db.users

    @property
    def predictions(self):
        return self.db.predictions

    @property
    def identities(self):
        return self.db.identities

    @property
    def sessions(self):
        return self.db.sessions

    def start_session(self):
        """Start a client session for multi-document transactions"""
        return self.client.start_session()

    def ping(self) -> bool:
        """Ping database"""
        result = self.db.command("ping")
        return result.get("ok") == 1


_database = None


# Dependency for FastAPI
def get_database() -> Database:
    """Get database instance"""
    global _database
    if _database is None:
        _database = Database()
    return _database
