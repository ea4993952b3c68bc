"""SQLAlchemy ORM models.

Models represent database tables:
- stores: Published store listings
- users: Users referenced by stores, reviews and hearts
- user_hearts: Per-user set of favorited stores
- reviews: Store reviews feeding the top-rated ranking
"""

from storefinder.models.review import ReviewRecord
from storefinder.models.store import StoreRecord
from storefinder.models.user import UserRecord, user_hearts

__all__ = ["ReviewRecord", "StoreRecord", "UserRecord", "user_hearts"]
