import logging
from typing import Any, Dict, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import create_document
from errors import ConflictError, StoreError
from schemas import User as UserSchema
from security import hash_password, verify_password as _verify_hash

logger = logging.getLogger(__name__)


class CredentialStore:
    """User accounts in the ``user`` collection.

    Names are expected to be validated already (see schemas.RegisterRequest).
    """

    def __init__(self, db: Database):
        self.collection = db["user"]
        self.db = db

    def register(self, name: str, raw_password: str) -> Dict[str, Any]:
        user = UserSchema(name=name, password_hash=hash_password(raw_password))
        try:
            doc = create_document(self.db, "user", user)
        except DuplicateKeyError:
            logger.info("Registration refused, name already taken: %s", name)
            raise ConflictError("Name already taken")
        except PyMongoError as exc:
            logger.exception("Failed to store user %s", name)
            raise StoreError() from exc
        logger.info("Registered user %s (%s)", name, doc["_id"])
        return doc

    def find_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"name": name})

    @staticmethod
    def verify_password(user: Dict[str, Any], raw_password: str) -> bool:
        return _verify_hash(raw_password, user.get("password_hash", ""))
