"""
User Profile Schema
===================

One document per analyst in the `users` collection, keyed by the identity
provider's `uid`.

Schema Fields:
--------------
- uid: str - Identity id issued by the identity provider
- name: str - Display name
- email: str - Account email
- specialty: str - Optional area of expertise ("" when unset)
- bio: str - Free text, "" on creation
- profileImage: str - Image reference, "" on creation
- verified: bool - False on creation
- createdAt: datetime - Profile creation time (UTC)
- stats: dict - Embedded statistics block (see ProfileStats)

accuracy, avgReturn and correctPredictions are maintained outside this
service; they are stored and displayed as-is.
"""
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

from config import DEFAULT_PROFILE_STATS
from utils.timezone import now_utc


class ProfileStats(BaseModel):
    """Embedded statistics block"""
    totalPredictions: int = 0
    correctPredictions: int = 0
    accuracy: float = Field(default=0, description="Percentage 0-100")
    avgReturn: float = 0
    rating: float = 0
    followers: int = 0
    following: int = 0


class UserProfile(BaseModel):
    uid: str
    name: str
    email: str
    specialty: str = ""
    bio: str = ""
    profileImage: str = ""
    verified: bool = False
    createdAt: datetime = Field(default_factory=now_utc)
    stats: ProfileStats = Field(default_factory=ProfileStats)

    class Config:
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "uid": "6f1c0e5a2b",
                "name": "Jane Doe",
                "email": "jane@example.com",
                "specialty": "Technology Stocks",
                "bio": "",
                "profileImage": "",
                "verified": False,
                "createdAt": "2025-11-10T17:45:00+00:00",
                "stats": {
                    "totalPredictions": 12,
                    "correctPredictions": 8,
                    "accuracy": 66.7,
                    "avgReturn": 4.2,
                    "rating": 4.1,
                    "followers": 30,
                    "following": 5
                }
            }
        }


def build_profile_document(uid: str, name: str, email: str, specialty: str = "") -> Dict[str, Any]:
    """Initial profile document written on signup"""
    profile = UserProfile(
        uid=uid,
        name=name,
        email=email,
        specialty=specialty,
        stats=ProfileStats(**DEFAULT_PROFILE_STATS),
    )
    return profile.model_dump()
