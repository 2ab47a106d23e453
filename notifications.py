import logging
import threading
from datetime import datetime
from database import db
from models import Notification, NotificationSettings, User

logger = logging.getLogger(__name__)

IMPORTANCE_LEVELS = ('low', 'normal', 'high')

# Maps a notification category to the settings flag that can silence it
CATEGORY_FLAGS = {
    'matchings': 'notify_matchings',
    'tasks': 'notify_tasks',
    'applications': 'notify_applications',
}


class RealtimeNotifier:
    """In-process registry of connected clients per user.

    Each client registers a listener callable; new notifications are handed to
    every listener of the target user. Users without clients simply poll the
    notifications API.
    """

    def __init__(self):
        self._clients = {}
        self._lock = threading.Lock()

    def register_client(self, user_id, client_id, listener=None):
        with self._lock:
            self._clients.setdefault(str(user_id), {})[client_id] = listener
        logger.debug(f"Realtime client {client_id} registered for user {user_id}")

    def unregister_client(self, user_id, client_id):
        with self._lock:
            clients = self._clients.get(str(user_id))
            if not clients:
                return
            clients.pop(client_id, None)
            if not clients:
                del self._clients[str(user_id)]

    def get_client_count(self, user_id=None):
        with self._lock:
            if user_id is None:
                return sum(len(clients) for clients in self._clients.values())
            return len(self._clients.get(str(user_id), {}))

    def has_active_clients(self, user_id):
        return self.get_client_count(user_id) > 0

    def push(self, user_id, payload):
        """Deliver a payload to all listeners of a user, returns delivery count"""
        with self._lock:
            listeners = [l for l in self._clients.get(str(user_id), {}).values() if l is not None]

        delivered = 0
        for listener in listeners:
            try:
                listener(payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Realtime delivery to user {user_id} failed: {e}")
        return delivered

    def clear(self):
        with self._lock:
            self._clients.clear()


realtime_notifier = RealtimeNotifier()


class NotificationService:

    def __init__(self, notifier=None):
        self.notifier = notifier or realtime_notifier

    def create_notification(self, user_id, title, message, entity_type=None, entity_id=None,
                            action=None, importance='normal', sender_id='system', link=None):
        if importance not in IMPORTANCE_LEVELS:
            importance = 'normal'

        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            action=action,
            importance=importance,
            sender_id=str(sender_id),
            link=link,
            read=False
        )
        db.session.add(notification)
        db.session.commit()

        if self.notifier.has_active_clients(user_id):
            self.notifier.push(user_id, {'type': 'notification', 'notification': notification.to_dict()})

        return notification

    def is_enabled(self, user_id, category):
        flag = CATEGORY_FLAGS.get(category)
        if not flag:
            return True
        settings = NotificationSettings.query.filter_by(user_id=user_id).first()
        return settings is None or bool(getattr(settings, flag))

    def notify_user(self, user_id, title, message, category=None, **kwargs):
        """Create a notification unless the user muted its category"""
        if not self.is_enabled(user_id, category):
            logger.debug(f"User {user_id} muted {category} notifications")
            return None
        return self.create_notification(user_id, title, message, **kwargs)

    def notify_roles(self, roles, title, message, category=None, **kwargs):
        users = User.query.filter(User.role.in_(roles)).all()
        sent = []
        for user in users:
            notification = self.notify_user(user.id, title, message, category=category, **kwargs)
            if notification:
                sent.append(notification)
        return sent

    def get_notifications(self, user_id, unread_only=False, entity_type=None, entity_id=None,
                          limit=50, offset=0):
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter(Notification.read.is_(False))
        if entity_type:
            query = query.filter(Notification.entity_type == entity_type)
        if entity_id is not None:
            query = query.filter(Notification.entity_id == str(entity_id))

        return query.order_by(Notification.created_at.desc(), Notification.id.desc())\
            .offset(offset).limit(limit).all()

    def count_unread(self, user_id):
        return Notification.query.filter_by(user_id=user_id, read=False).count()

    def mark_as_read(self, notification_id, user_id=None):
        notification = db.session.get(Notification, notification_id)
        if not notification or (user_id is not None and notification.user_id != int(user_id)):
            return False

        if not notification.read:
            notification.read = True
            notification.read_at = datetime.utcnow()
            db.session.commit()
        return True

    def mark_all_as_read(self, user_id):
        count = Notification.query.filter_by(user_id=user_id, read=False)\
            .update({'read': True, 'read_at': datetime.utcnow()}, synchronize_session=False)
        db.session.commit()
        return count

    def delete_notification(self, notification_id, user_id=None):
        notification = db.session.get(Notification, notification_id)
        if not notification or (user_id is not None and notification.user_id != int(user_id)):
            return False

        db.session.delete(notification)
        db.session.commit()
        return True

    def get_settings(self, user_id):
        settings = NotificationSettings.query.filter_by(user_id=user_id).first()
        if not settings:
            settings = NotificationSettings(user_id=user_id, notify_matchings=True,
                                            notify_tasks=True, notify_applications=True)
            db.session.add(settings)
            db.session.commit()
        return settings

    def update_settings(self, user_id, **flags):
        settings = self.get_settings(user_id)
        for flag in CATEGORY_FLAGS.values():
            if flag in flags and flags[flag] is not None:
                setattr(settings, flag, bool(flags[flag]))
        db.session.commit()
        return settings


notification_service = NotificationService()
