"""
Course Catalog Resolver

Turns raw requirement/prerequisite member ids into concrete course sets.
Concrete ids denote themselves, ANY placeholders denote every course in
their prefix (never enumerated), and subject patterns are expanded through
a catalog prefix lookup. One resolver is created per request so each
pattern is looked up at most once per verification.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from core.parsers import CourseToken, TokenKind, parse_course_token


@dataclass
class ResolvedToken:
    """A member token together with its concrete expansion"""
    token: CourseToken
    course_ids: List[str] = field(default_factory=list)  # empty for ANY

    @property
    def raw(self) -> str:
        return self.token.raw

    @property
    def matches_all(self) -> bool:
        return self.token.kind is TokenKind.ANY_IN_PREFIX

    def matches(self, course_id: str) -> bool:
        """Check whether a concrete course satisfies this member"""
        if self.token.kind is TokenKind.PATTERN_IN_PREFIX:
            return course_id in self.course_ids
        return self.token.matches_id(course_id)

    def matching(self, candidates: Iterable[str], exclude: Optional[str] = None) -> List[str]:
        """Candidates (in their given order) that satisfy this member"""
        if self.token.kind is TokenKind.CONCRETE:
            return [c for c in candidates if c == self.raw]
        return [c for c in candidates if c != exclude and self.matches(c)]


@dataclass
class MemberExpansion:
    """Union of several members' expansions"""
    course_ids: List[str] = field(default_factory=list)
    any_token: Optional[CourseToken] = None  # set when an ANY member short-circuited

    @property
    def is_unrestricted(self) -> bool:
        return self.any_token is not None


class CatalogResolver:
    """Resolves course tokens against the catalog"""

    def __init__(self, catalog):
        self.catalog = catalog
        self._expansions: Dict[tuple, List[str]] = {}

    def resolve(self, course_id: str) -> ResolvedToken:
        """
        Resolve a single member id.

        Concrete and ANY tokens never touch the catalog; pattern tokens are
        expanded once and memoised.
        """
        token = parse_course_token(course_id)
        if token.kind is TokenKind.PATTERN_IN_PREFIX:
            return ResolvedToken(token=token, course_ids=self._expand_pattern(token))
        if token.kind is TokenKind.CONCRETE:
            return ResolvedToken(token=token, course_ids=[token.raw])
        return ResolvedToken(token=token)

    def expand_members(self, course_ids: Iterable[str]) -> MemberExpansion:
        """
        Expand a group's members into one deduplicated course list.

        Stops at the first ANY member: the union is then every course in
        that prefix and further expansion cannot narrow it.
        """
        expansion = MemberExpansion()
        seen = set()

        for cid in course_ids:
            token = parse_course_token(cid)
            if token.kind is TokenKind.ANY_IN_PREFIX:
                expansion.any_token = token
                return expansion

            expanded = [token.raw] if token.kind is TokenKind.CONCRETE else self._expand_pattern(token)
            for expanded_id in expanded:
                if expanded_id not in seen:
                    seen.add(expanded_id)
                    expansion.course_ids.append(expanded_id)

        return expansion

    def _expand_pattern(self, token: CourseToken) -> List[str]:
        key = (token.prefix, token.pattern)
        if key not in self._expansions:
            rows = self.catalog.find_courses_by_prefix(token.prefix, token.pattern)
            self._expansions[key] = [row["course_id"] for row in rows]
        return self._expansions[key]
