"""Exceptions raised by the service layer and mapped to HTTP codes by the routes"""


class RecruitingError(Exception):
    """Base class for all service errors"""
    status_code = 500


class ValidationError(RecruitingError):
    status_code = 400


class NotFoundError(RecruitingError):
    status_code = 404


class LockConflictError(RecruitingError):
    """Entity is locked by another user"""
    status_code = 409

    def __init__(self, lock):
        self.lock = lock
        super().__init__(f"Entity is already being edited by {lock.user_name}")


class InvalidTransitionError(RecruitingError):
    status_code = 409

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from '{current}' to '{target}'")
