"""
Shared parsing utilities for catalog data.

Course identifiers are a 2-character domain prefix followed by a suffix.
The suffix is either a numeric code (a concrete course) or a placeholder:
"ANY" for every course in the prefix, or a subject pattern such as "ANTH"
that matches course codes. These parsers are used by the resolver, the
availability service and group validation so the rules live in one place.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List


TERM_NAMES = ("Fall", "Winter", "Spring", "Summer")
ALL_TERMS_AVAILABILITY = ", ".join(TERM_NAMES)

PREFIX_LENGTH = 2
ANY_PLACEHOLDER = "ANY"

_NON_DIGIT = re.compile(r"\D")


class TokenKind(Enum):
    """How a course identifier should be resolved"""
    CONCRETE = "concrete"
    ANY_IN_PREFIX = "any_in_prefix"
    PATTERN_IN_PREFIX = "pattern_in_prefix"


@dataclass(frozen=True)
class CourseToken:
    """A parsed course identifier"""
    raw: str
    kind: TokenKind
    prefix: str
    pattern: str = ""  # code prefix for PATTERN_IN_PREFIX tokens

    @property
    def is_wildcard(self) -> bool:
        return self.kind is not TokenKind.CONCRETE

    def matches_id(self, course_id: str) -> bool:
        """
        Check a concrete course id against this token without a catalog.

        PATTERN_IN_PREFIX tokens need the course code as well, so they
        only match through the resolver's expansion.
        """
        if self.kind is TokenKind.CONCRETE:
            return course_id == self.raw
        if self.kind is TokenKind.ANY_IN_PREFIX:
            return course_id.startswith(self.prefix)
        return False


def parse_course_token(course_id: str) -> CourseToken:
    """
    Parse a course identifier into a token.

    Examples:
        "CS00101"  -> CONCRETE
        "CS000ANY" -> ANY_IN_PREFIX (prefix "CS")
        "SC00ANTH" -> PATTERN_IN_PREFIX (prefix "SC", pattern "ANTH")
    """
    raw = (course_id or "").strip()
    prefix = raw[:PREFIX_LENGTH]
    suffix = raw[PREFIX_LENGTH:].lstrip("0").upper()

    if not _NON_DIGIT.search(suffix):
        return CourseToken(raw=raw, kind=TokenKind.CONCRETE, prefix=prefix)
    if suffix == ANY_PLACEHOLDER:
        return CourseToken(raw=raw, kind=TokenKind.ANY_IN_PREFIX, prefix=prefix)
    return CourseToken(raw=raw, kind=TokenKind.PATTERN_IN_PREFIX, prefix=prefix, pattern=suffix)


def split_availability(availability: str) -> List[str]:
    """
    Split an availability string into lower-cased term tokens.

    Example: "Fall, Spring" -> ["fall", "spring"]
    """
    if not availability:
        return []
    return [token.strip().lower() for token in availability.split(",") if token.strip()]


def format_availability(rows: Iterable[Dict]) -> str:
    """
    Union availability flags across rows into "Fall, Winter, ..." order.

    Args:
        rows: course_availability rows with boolean/int term columns

    Returns:
        Comma-joined term names, or "" if no row offers any term
    """
    rows = list(rows)
    offered = [
        term for term in TERM_NAMES
        if any(_is_offered(row.get(term)) for row in rows)
    ]
    return ", ".join(offered)


def normalize_term_name(term: str) -> str:
    """
    Normalize a term name to its canonical capitalization.

    Raises:
        ValueError: If the term is not Fall, Winter, Spring or Summer
    """
    name = (term or "").strip().capitalize()
    if name not in TERM_NAMES:
        raise ValueError(f"Invalid term: {term}. Must be one of {', '.join(TERM_NAMES)}")
    return name


def _is_offered(value) -> bool:
    return value is True or value == 1
