"""Per-identity JSON blob storage."""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vocabplan.exceptions import StaleWriteError
from vocabplan.models.models import UserBlob

logger = logging.getLogger(__name__)

PLAN_KEY = "plan"
PLAN_STATE_KEY = "plan_state"
PROGRESS_KEY = "progress"
TEST_HISTORY_KEY = "test_history"

USER_KEYS = (PLAN_KEY, PLAN_STATE_KEY, PROGRESS_KEY, TEST_HISTORY_KEY)


class BlobStore:
    """Key/value store scoped per identity.

    Every blob carries a version that grows by one on each save. A save made
    with an ``expected_version`` that no longer matches the stored one is
    rejected with ``StaleWriteError`` instead of overwriting a newer blob.
    """

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def _get(self, user_id: str, key: str) -> Optional[UserBlob]:
        return (
            self.db.query(UserBlob)
            .filter(
                and_(
                    UserBlob.user_id == user_id,
                    UserBlob.key == key,
                )
            )
            .first()
        )

    def _version(self, user_id: str, key: str) -> int:
        version = (
            self.db.query(UserBlob.version)
            .filter(
                and_(
                    UserBlob.user_id == user_id,
                    UserBlob.key == key,
                )
            )
            .scalar()
        )
        return version or 0

    def load(self, user_id: str, key: str) -> Tuple[Optional[Any], int]:
        """Load a blob and its version; ``(None, 0)`` when absent."""
        blob = self._get(user_id, key)
        if not blob:
            return None, 0
        try:
            return json.loads(blob.value), blob.version
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt blob {key} for user {user_id}, ignoring it: {e}")
            return None, blob.version

    def _write(self, user_id: str, key: str, data: Any, expected_version: Optional[int]) -> int:
        """Stage one blob write in the current transaction and return its new version."""
        if expected_version is None:
            expected_version = self._version(user_id, key)
        value = json.dumps(data, ensure_ascii=False)

        if expected_version == 0:
            current_version = self._version(user_id, key)
            if current_version:
                raise StaleWriteError(user_id, key, 0, current_version)
            self.db.add(UserBlob(user_id=user_id, key=key, value=value, version=1))
            try:
                self.db.flush()
            except IntegrityError:
                # Created by another writer since the check above
                self.db.rollback()
                raise StaleWriteError(user_id, key, 0, self._version(user_id, key))
            return 1

        # Compare-and-set on the version column
        updated = (
            self.db.query(UserBlob)
            .filter(
                and_(
                    UserBlob.user_id == user_id,
                    UserBlob.key == key,
                    UserBlob.version == expected_version,
                )
            )
            .update(
                {UserBlob.value: value, UserBlob.version: expected_version + 1},
                synchronize_session=False,
            )
        )
        if not updated:
            raise StaleWriteError(user_id, key, expected_version, self._version(user_id, key))
        return expected_version + 1

    def save_many(
        self,
        user_id: str,
        blobs: Dict[str, Any],
        expected_versions: Optional[Dict[str, int]] = None,
    ) -> Dict[str, int]:
        """Save several blobs in one transaction and return their new versions.

        Either every blob is written or, when any of them is stale, none is.
        ``expected_versions`` maps keys to the versions the caller loaded (a
        missing key means 0); ``None`` skips the check.
        """
        versions = {}
        try:
            for key, data in blobs.items():
                expected = None if expected_versions is None else expected_versions.get(key, 0)
                versions[key] = self._write(user_id, key, data, expected)
            self.db.commit()
        except StaleWriteError:
            self.db.rollback()
            raise
        logger.debug(f"Saved {', '.join(blobs)} for user {user_id} (versions {versions})")
        return versions

    def save(self, user_id: str, key: str, data: Any, expected_version: Optional[int] = None) -> int:
        """Save a blob and return its new version.

        ``expected_version`` is the version the caller loaded (0 for a blob it
        never saw); ``None`` skips the check.
        """
        expected_versions = None if expected_version is None else {key: expected_version}
        return self.save_many(user_id, {key: data}, expected_versions)[key]

    def delete(self, user_id: str, key: str) -> bool:
        """Delete one blob."""
        blob = self._get(user_id, key)
        if not blob:
            return False
        self.db.delete(blob)
        self.db.commit()
        return True

    def clear_user(self, user_id: str) -> int:
        """Delete every blob of a user."""
        count = (
            self.db.query(UserBlob)
            .filter(UserBlob.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Cleared {count} blobs for user {user_id}")
        return count

    def get_user_ids(self) -> List[str]:
        """Get ids of users that have anything stored."""
        return [row[0] for row in self.db.query(UserBlob.user_id).distinct().all()]
