import logging
from datetime import datetime, timedelta
from database import db
from models import EditingLock
from utils import ConfigHelper

logger = logging.getLogger(__name__)


class EditingLockService:
    """Advisory TTL locks that keep two users from editing the same entity.

    A lock row is keyed by (entity_id, entity_type). Only one row per entity
    may be active; expired rows are flipped to inactive lazily whenever locks
    are read or created.
    """

    def __init__(self, default_duration_minutes=None):
        if default_duration_minutes is None:
            default_duration_minutes = ConfigHelper.get_lock_config()['duration_minutes']
        self.default_duration_minutes = default_duration_minutes

    def _duration(self, duration_minutes):
        return timedelta(minutes=duration_minutes or self.default_duration_minutes)

    def _active_query(self, entity_id, entity_type):
        return EditingLock.query.filter(
            EditingLock.entity_id == str(entity_id),
            EditingLock.entity_type == entity_type,
            EditingLock.active.is_(True),
            EditingLock.expires_at > datetime.utcnow()
        )

    def cleanup_expired_locks(self):
        """Deactivate all locks whose expiry has passed, returns the count"""
        count = EditingLock.query.filter(
            EditingLock.active.is_(True),
            EditingLock.expires_at <= datetime.utcnow()
        ).update({'active': False}, synchronize_session=False)
        db.session.commit()

        if count:
            logger.info(f"Deactivated {count} expired editing locks")
        return count

    def get_active_lock(self, entity_id, entity_type):
        self.cleanup_expired_locks()
        return self._active_query(entity_id, entity_type).order_by(EditingLock.id.asc()).first()

    def create_lock(self, entity_id, entity_type, user_id, user_name, duration_minutes=None):
        """Acquire the lock for an entity.

        Returns the caller's lock when acquired or extended. When another user
        holds the lock, that user's lock is returned unchanged so the caller can
        compare ``lock.user_id`` and report the conflict.
        """
        user_id = str(user_id)
        existing = self.get_active_lock(entity_id, entity_type)

        if existing:
            if existing.user_id != user_id:
                logger.info(f"{entity_type} {entity_id} is locked by {existing.user_name}")
                return existing

            existing.expires_at = datetime.utcnow() + self._duration(duration_minutes)
            db.session.commit()
            return existing

        now = datetime.utcnow()
        lock = EditingLock(
            entity_id=str(entity_id),
            entity_type=entity_type,
            user_id=user_id,
            user_name=user_name,
            locked_at=now,
            expires_at=now + self._duration(duration_minutes),
            active=True
        )
        db.session.add(lock)
        db.session.commit()

        # Two writers may have inserted concurrently; the oldest row wins.
        winner = self._active_query(entity_id, entity_type).order_by(EditingLock.id.asc()).first()
        if winner and winner.id != lock.id:
            lock.active = False
            db.session.commit()
            logger.warning(f"Lost lock race on {entity_type} {entity_id} to {winner.user_name}")
            return winner

        logger.info(f"{user_name} locked {entity_type} {entity_id} until {lock.expires_at.isoformat()}")
        return lock

    def release_lock(self, lock_id, user_id):
        """Release a lock, only its owner may do so"""
        lock = db.session.get(EditingLock, lock_id)
        if not lock or not lock.active or lock.user_id != str(user_id):
            return False

        lock.active = False
        db.session.commit()
        logger.info(f"Released editing lock {lock_id} on {lock.entity_type} {lock.entity_id}")
        return True

    def release_entity_lock(self, entity_id, entity_type, user_id):
        lock = self.get_active_lock(entity_id, entity_type)
        if not lock:
            return False
        return self.release_lock(lock.id, user_id)

    def extend_lock(self, lock_id, duration_minutes=None):
        lock = db.session.get(EditingLock, lock_id)
        if not lock or not lock.active or lock.expires_at <= datetime.utcnow():
            return None

        lock.expires_at = datetime.utcnow() + self._duration(duration_minutes)
        db.session.commit()
        return lock

    def get_user_active_locks(self, user_id):
        self.cleanup_expired_locks()
        return EditingLock.query.filter(
            EditingLock.user_id == str(user_id),
            EditingLock.active.is_(True),
            EditingLock.expires_at > datetime.utcnow()
        ).order_by(EditingLock.locked_at.desc()).all()

    def can_edit_entity(self, entity_id, entity_type, user_id):
        lock = self.get_active_lock(entity_id, entity_type)
        return lock is None or lock.user_id == str(user_id)


editing_lock_service = EditingLockService()
