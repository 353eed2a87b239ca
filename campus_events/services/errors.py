"""Errors raised by the service layer; routes turn them into HTTP responses."""


class ServiceError(Exception):
    status_code = 400


class InvalidIntervalError(ServiceError):
    status_code = 400


class InvalidStateError(ServiceError):
    status_code = 400


class UnauthorizedError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class LockUnavailableError(ConflictError):
    pass


class EventFullError(ConflictError):
    pass


class AlreadyRegisteredError(ConflictError):
    pass


class AssistantUpstreamError(ServiceError):
    status_code = 502


class AssistantUnavailableError(ServiceError):
    status_code = 503
