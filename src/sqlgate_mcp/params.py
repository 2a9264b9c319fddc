"""Typed tool argument helpers - pagination and identifier checks"""

import re
from typing import Optional

from pydantic import BaseModel

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500

MAX_IDENTIFIER_LENGTH = 127

_IDENTIFIER_RE = re.compile(r"[a-zA-Z0-9_#@$]+")


class Pagination(BaseModel):
    """Resolved page window for catalog listings"""
    page: int
    page_size: int
    offset: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def get_pagination(
    page: Optional[int] = None,
    page_size: Optional[int] = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Pagination:
    """Clamp requested page values into range; out-of-range values are corrected, not rejected"""
    page = DEFAULT_PAGE if page is None or page < 1 else page

    if page_size is None or page_size < 1:
        page_size = default_page_size
    page_size = min(page_size, max_page_size)

    return Pagination(page=page, page_size=page_size, offset=(page - 1) * page_size)


def is_valid_identifier(name: Optional[str]) -> bool:
    """Check a schema or object name used to build catalog queries"""
    if not name or len(name) > MAX_IDENTIFIER_LENGTH:
        return False
    return _IDENTIFIER_RE.fullmatch(name) is not None


def get_valid_schema(schema: Optional[str], default_schema: Optional[str] = None) -> Optional[str]:
    """Resolve the schema argument, falling back to the default, and validate it"""
    schema = schema or default_schema
    if schema and not is_valid_identifier(schema):
        raise ValueError(f"invalid schema name: {schema}")
    return schema
