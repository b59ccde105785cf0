# core/errors.py
"""
Типизированные ошибки доменного слоя.

Каждая ошибка несёт машинный код, человекочитаемое описание и `kind`:
  - "not_allowed" - правило запрещает действие (лимит матчей, лимит сообщений), надо подождать;
  - "invalid" - запрос некорректен, повтор без изменений не поможет;
  - "failure" - сбой хранилища или внешнего сервиса, можно повторить.
"""
from starlette import status


class DomainError(Exception):
    code = "domain_error"
    kind = "invalid"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code, "kind": self.kind}


class Unauthenticated(DomainError):
    code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class NotFound(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationError(DomainError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class CapacityExceeded(DomainError):
    code = "capacity_exceeded"
    kind = "not_allowed"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Match limit reached. Unmatch someone to continue."


class RateLimited(DomainError):
    code = "rate_limited"
    kind = "not_allowed"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Message limit reached. Wait for a reply or for the limit to reset."


class LocationUnavailable(DomainError):
    code = "location_unavailable"
    status_code = 422
    default_detail = "Location data not available for both users"


class ConflictError(DomainError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflicting request"


class DependencyError(DomainError):
    code = "dependency_error"
    kind = "failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Something went wrong, please retry"
