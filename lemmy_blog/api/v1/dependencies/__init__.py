from lemmy_blog.api.v1.dependencies.current_user import (
    CurrentIdentity,
    OptionalIdentity,
    get_current_identity,
    get_optional_identity,
)
from lemmy_blog.api.v1.dependencies.pagination import PaginationParams, get_pagination_params
from lemmy_blog.api.v1.dependencies.services import get_auth_service, get_post_service

__all__ = [
    "CurrentIdentity",
    "OptionalIdentity",
    "PaginationParams",
    "get_auth_service",
    "get_current_identity",
    "get_optional_identity",
    "get_pagination_params",
    "get_post_service",
]
