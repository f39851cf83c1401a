from shared.models.envelope import Envelope, ok
from shared.models.pagination import PaginatedResponse, PaginationParams
from shared.models.user import CurrentUser

__all__ = ["CurrentUser", "Envelope", "PaginatedResponse", "PaginationParams", "ok"]
