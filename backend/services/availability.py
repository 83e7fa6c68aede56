"""
Requirement Availability Service

Computes in which terms a college offers the planner's remaining
requirements. Standalone courses report their own terms; a requirement
group reports the union of the terms of every course it resolves to.
"""

from typing import List, Dict, Any

from core.parsers import ALL_TERMS_AVAILABILITY, format_availability, normalize_term_name
from services.catalog import get_catalog_service
from services.resolver import CatalogResolver


class AvailabilityService:
    """Availability lookups for standalone and group requirements"""

    def __init__(self, catalog=None):
        self.catalog = catalog or get_catalog_service()

    def standalone_availability(self, college_id: Any, course_ids: List[str]) -> List[Dict[str, str]]:
        """
        Availability of standalone requirement courses.

        Returns:
            [{"course_id", "availability"}] for courses with an availability row
        """
        if not course_ids:
            return []

        rows_by_course: Dict[str, List[Dict[str, Any]]] = {}
        for row in self.catalog.get_availability_rows(college_id, course_ids):
            rows_by_course.setdefault(row.get("course_id"), []).append(row)

        return [
            {"course_id": cid, "availability": format_availability(rows_by_course[cid])}
            for cid in dict.fromkeys(course_ids)
            if cid in rows_by_course
        ]

    def group_availability(self, college_id: Any, group_ids: List[Any]) -> List[Dict[str, Any]]:
        """
        Availability of requirement groups (union over resolved members).

        A group with an ANY member is offered every term; its other members
        are not looked at.

        Returns:
            [{"group_id", "availability"}] for groups that have members
        """
        if not group_ids:
            return []

        members_by_group: Dict[Any, List[str]] = {}
        for row in self.catalog.get_requirement_group_courses(group_ids):
            members_by_group.setdefault(row["group_id"], []).append(row["course_id"])

        resolver = CatalogResolver(self.catalog)
        groups = []

        for group_id, member_ids in members_by_group.items():
            expansion = resolver.expand_members(member_ids)

            if expansion.is_unrestricted:
                availability = ALL_TERMS_AVAILABILITY
            elif expansion.course_ids:
                rows = self.catalog.get_availability_rows(college_id, expansion.course_ids)
                availability = format_availability(rows)
            else:
                availability = ""

            groups.append({"group_id": group_id, "availability": availability})

        return groups

    def requirements_availability(
        self,
        college_id: Any,
        standalone_course_ids: List[str],
        group_ids: List[Any]
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Availability for a pathway's remaining standalone and group requirements"""
        return {
            "standalone": self.standalone_availability(college_id, standalone_course_ids),
            "groups": self.group_availability(college_id, group_ids)
        }

    def group_term_courses(self, group_id: Any, college_id: Any, term: str) -> List[Dict[str, str]]:
        """
        Courses of a requirement group the college offers in a term.

        With an ANY member every course listed in the group is returned,
        regardless of term.

        Raises:
            ValueError: If term is not Fall, Winter, Spring or Summer
        """
        term_name = normalize_term_name(term)
        member_ids = [row["course_id"] for row in self.catalog.get_requirement_group_courses([group_id])]

        resolver = CatalogResolver(self.catalog)
        expansion = resolver.expand_members(member_ids)

        if expansion.is_unrestricted:
            return self.catalog.get_courses(member_ids)

        if not expansion.course_ids:
            return []

        offered = [
            row["course_id"]
            for row in self.catalog.get_availability_rows(college_id, expansion.course_ids)
            if row.get(term_name) in (True, 1)
        ]
        codes = self.catalog.get_course_codes(offered)
        return [
            {"course_id": cid, "code": codes[cid]}
            for cid in dict.fromkeys(offered)
            if cid in codes
        ]
