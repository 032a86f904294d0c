from careconnect.schemas.common import CamelModel, Pagination, UserPublic, UserProfile

__all__ = ["CamelModel", "Pagination", "UserPublic", "UserProfile"]
