"""
Catalog Service for Pathway and Prerequisite Data

Handles all read-only Firestore operations for the planner: courses,
course availability, colleges/pathways/degrees, requirement groups and
prerequisite groups. Includes Redis caching for the lookups that every
verification repeats (course codes and wildcard expansions).
"""

from typing import List, Dict, Any, Optional, Iterable

from google.api_core.exceptions import GoogleAPIError

from core.config import get_firestore_client, FIRESTORE_IN_LIMIT
from services.cache import get_cache, is_cache_available


class CatalogError(Exception):
    """Raised when the catalog store cannot be queried."""
    def __init__(self, message: str, collection: Optional[str] = None):
        super().__init__(message)
        self.collection = collection


class CatalogService:
    """Service for reading catalog and requirement data from Firestore."""

    COLLEGES_COLLECTION = "colleges"
    DEGREES_COLLECTION = "degrees"
    PATHWAYS_COLLECTION = "pathways"
    COURSES_COLLECTION = "courses"
    AVAILABILITY_COLLECTION = "course_availability"
    STANDALONE_COLLECTION = "requirement_standalone"
    REQUIREMENT_GROUPS_COLLECTION = "requirement_groups"
    GROUP_PATHWAYS_COLLECTION = "requirement_group_pathways"
    GROUP_COURSES_COLLECTION = "requirement_group_courses"
    PREREQ_GROUPS_COLLECTION = "prerequisite_groups"
    PREREQ_GROUP_COURSES_COLLECTION = "prerequisite_group_courses"

    def __init__(self, use_cache: bool = True):
        """Initialize the catalog service."""
        self.db = get_firestore_client()
        self._use_cache = use_cache and is_cache_available()
        self._cache = get_cache() if self._use_cache else None

    # --- Query helpers ---

    def _stream(self, collection: str, *filters) -> List[Dict[str, Any]]:
        """
        Stream a collection with (field, op, value) filters applied.

        Raises:
            CatalogError: If Firestore fails
        """
        try:
            query = self.db.collection(collection)
            for field, op, value in filters:
                query = query.where(field, op, value)
            return [doc.to_dict() for doc in query.stream()]
        except GoogleAPIError as e:
            print(f"[Catalog] Query on {collection} failed: {e}")
            raise CatalogError(f"Failed to query {collection}: {e}", collection) from e

    def _stream_in(
        self,
        collection: str,
        field: str,
        values: Iterable[Any],
        *filters
    ) -> List[Dict[str, Any]]:
        """Run an "in" query, chunked to Firestore's value limit"""
        unique = list(dict.fromkeys(v for v in values if v is not None))
        rows = []
        for start in range(0, len(unique), FIRESTORE_IN_LIMIT):
            chunk = unique[start:start + FIRESTORE_IN_LIMIT]
            rows.extend(self._stream(collection, *filters, (field, "in", chunk)))
        return rows

    # --- Courses ---

    def get_courses(self, course_ids: Iterable[str]) -> List[Dict[str, str]]:
        """Get {course_id, code} rows for the given ids"""
        return [
            {"course_id": row.get("course_id", ""), "code": row.get("code", "")}
            for row in self._stream_in(self.COURSES_COLLECTION, "course_id", course_ids)
        ]

    def get_course_codes(self, course_ids: Iterable[str]) -> Dict[str, str]:
        """
        Get display codes for course ids.

        Ids missing from the catalog are absent from the result.
        """
        course_ids = list(dict.fromkeys(course_ids))
        codes: Dict[str, str] = {}

        if self._use_cache and self._cache:
            codes.update(self._cache.get_course_codes(course_ids))

        missing = [cid for cid in course_ids if cid not in codes]
        if missing:
            fetched = {row["course_id"]: row["code"] for row in self.get_courses(missing)}
            codes.update(fetched)
            if self._use_cache and self._cache:
                self._cache.set_course_codes(fetched)

        return codes

    def find_courses_by_code(self, code: str) -> List[Dict[str, str]]:
        """
        Get every course whose code equals the given code.

        Catalog codes are stored upper-case ("CS 101"), so the input is
        trimmed and upper-cased before the equality filter.
        """
        target = code.strip().upper()
        return [
            {"course_id": row.get("course_id", ""), "code": row.get("code", "")}
            for row in self._stream(self.COURSES_COLLECTION, ("code", "==", target))
        ]

    def find_courses_by_prefix(self, prefix: str, pattern: str) -> List[Dict[str, str]]:
        """
        Expand a wildcard: courses whose id starts with prefix and whose
        code starts with pattern (case-insensitive).
        """
        if self._use_cache and self._cache:
            cached = self._cache.get_prefix_matches(prefix, pattern)
            if cached is not None:
                return cached

        pattern_upper = pattern.upper()
        rows = self._stream(
            self.COURSES_COLLECTION,
            ("course_id", ">=", prefix),
            ("course_id", "<=", prefix + "\uf8ff")
        )
        matches = [
            {"course_id": row.get("course_id", ""), "code": row.get("code", "")}
            for row in rows
            if row.get("course_id", "").startswith(prefix)
            and row.get("code", "").upper().startswith(pattern_upper)
        ]

        if self._use_cache and self._cache:
            self._cache.set_prefix_matches(prefix, pattern, matches)

        return matches

    def get_availability_rows(self, college_id: Any, course_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Get course_availability rows for a college"""
        return self._stream_in(
            self.AVAILABILITY_COLLECTION,
            "course_id",
            course_ids,
            ("college_id", "==", college_id)
        )

    # --- Prerequisite groups ---

    def get_prerequisite_groups(self, course_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Get prerequisite groups whose dependent course is in course_ids"""
        return [
            {
                "group_id": row.get("group_id"),
                "course_id": row.get("course_id"),
                "min_courses": row.get("min_courses", 1)
            }
            for row in self._stream_in(self.PREREQ_GROUPS_COLLECTION, "course_id", course_ids)
        ]

    def get_prerequisite_group_members(self, group_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """Get {group_id, prereq_id} member rows for the given groups"""
        return [
            {"group_id": row.get("group_id"), "prereq_id": row.get("prereq_id")}
            for row in self._stream_in(self.PREREQ_GROUP_COURSES_COLLECTION, "group_id", group_ids)
        ]

    # --- Requirement groups ---

    def get_requirement_group_courses(self, group_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """Get {group_id, course_id} rows for requirement groups"""
        return [
            {"group_id": row.get("group_id"), "course_id": row.get("course_id")}
            for row in self._stream_in(self.GROUP_COURSES_COLLECTION, "group_id", group_ids)
        ]

    def get_requirement_groups(self, group_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """Get {group_id, description} rows"""
        return self._stream_in(self.REQUIREMENT_GROUPS_COLLECTION, "group_id", group_ids)

    def get_group_pathways(self, pathway_id: Any) -> List[Dict[str, Any]]:
        """Get {pathway_id, group_id, instances} rows for a pathway"""
        return self._stream(self.GROUP_PATHWAYS_COLLECTION, ("pathway_id", "==", pathway_id))

    def get_standalone_course_ids(self, pathway_id: Any) -> List[str]:
        """Get course ids of a pathway's standalone requirements"""
        rows = self._stream(self.STANDALONE_COLLECTION, ("pathway_id", "==", pathway_id))
        return [row["course_id"] for row in rows if row.get("course_id")]

    # --- Colleges, pathways, degrees ---

    def list_colleges(self) -> List[Dict[str, Any]]:
        """Get all colleges"""
        return self._stream(self.COLLEGES_COLLECTION)

    def get_pathways_for_college(self, college_id: Any) -> List[Dict[str, Any]]:
        """Get pathway rows for a college"""
        return self._stream(self.PATHWAYS_COLLECTION, ("college_id", "==", college_id))

    def get_pathways_by_name(self, name: str) -> List[Dict[str, Any]]:
        """Get pathway rows with the given name (any college)"""
        return self._stream(self.PATHWAYS_COLLECTION, ("name", "==", name))

    def get_degrees(self, degree_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """Get degree rows by id"""
        return self._stream_in(self.DEGREES_COLLECTION, "degree_id", degree_ids)

    def find_pathway(self, college_id: Any, name: str, degree_id: Any) -> Optional[Dict[str, Any]]:
        """Get the pathway for a college + name + degree, or None"""
        rows = self._stream(
            self.PATHWAYS_COLLECTION,
            ("college_id", "==", college_id),
            ("name", "==", name),
            ("degree_id", "==", degree_id)
        )
        return rows[0] if rows else None

    def clear_cache(self) -> bool:
        """Clear all cached catalog data"""
        if self._use_cache and self._cache:
            return self._cache.clear_all()
        return False

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        if self._use_cache and self._cache:
            return self._cache.get_stats()
        return {"connected": False}


# Singleton instance
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get singleton instance of CatalogService"""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
