"""
Shared test fixtures

Provides an in-memory stand-in for CatalogService so planner logic can be
tested without Firestore.
"""

import pytest
import sys
from pathlib import Path

# Add backend to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))


class InMemoryCatalog:
    """Implements the CatalogService read interface over plain dicts"""

    def __init__(
        self,
        courses=None,
        prerequisite_groups=None,
        prerequisite_members=None,
        availability=None,
        requirement_group_courses=None,
        requirement_groups=None,
        group_pathways=None,
        standalone=None,
        colleges=None,
        pathways=None,
        degrees=None
    ):
        self.courses = dict(courses or {})                          # course_id -> code
        self.prerequisite_groups = list(prerequisite_groups or [])  # {group_id, course_id, min_courses}
        self.prerequisite_members = list(prerequisite_members or [])  # (group_id, prereq_id)
        self.availability = list(availability or [])                # course_availability rows
        self.requirement_group_courses = list(requirement_group_courses or [])  # (group_id, course_id)
        self.requirement_groups = list(requirement_groups or [])
        self.group_pathways = list(group_pathways or [])
        self.standalone = list(standalone or [])                    # (pathway_id, course_id)
        self.colleges = list(colleges or [])
        self.pathways = list(pathways or [])
        self.degrees = list(degrees or [])
        self.prefix_lookups = []
        self.fail_with = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def get_courses(self, course_ids):
        self._check()
        return [
            {"course_id": cid, "code": self.courses[cid]}
            for cid in dict.fromkeys(course_ids)
            if cid in self.courses
        ]

    def get_course_codes(self, course_ids):
        self._check()
        return {cid: self.courses[cid] for cid in course_ids if cid in self.courses}

    def find_courses_by_code(self, code):
        self._check()
        target = code.strip().upper()
        return [
            {"course_id": cid, "code": c}
            for cid, c in self.courses.items()
            if c.upper() == target
        ]

    def find_courses_by_prefix(self, prefix, pattern):
        self._check()
        self.prefix_lookups.append((prefix, pattern))
        return [
            {"course_id": cid, "code": c}
            for cid, c in self.courses.items()
            if cid.startswith(prefix) and c.upper().startswith(pattern.upper())
        ]

    def get_availability_rows(self, college_id, course_ids):
        self._check()
        wanted = set(course_ids)
        return [
            row for row in self.availability
            if row.get("college_id") == college_id and row.get("course_id") in wanted
        ]

    def get_prerequisite_groups(self, course_ids):
        self._check()
        wanted = set(course_ids)
        return [
            {
                "group_id": g["group_id"],
                "course_id": g["course_id"],
                "min_courses": g.get("min_courses", 1)
            }
            for g in self.prerequisite_groups
            if g["course_id"] in wanted
        ]

    def get_prerequisite_group_members(self, group_ids):
        self._check()
        wanted = set(group_ids)
        return [
            {"group_id": gid, "prereq_id": pid}
            for gid, pid in self.prerequisite_members
            if gid in wanted
        ]

    def get_requirement_group_courses(self, group_ids):
        self._check()
        wanted = set(group_ids)
        return [
            {"group_id": gid, "course_id": cid}
            for gid, cid in self.requirement_group_courses
            if gid in wanted
        ]

    def get_requirement_groups(self, group_ids):
        self._check()
        wanted = set(group_ids)
        return [row for row in self.requirement_groups if row.get("group_id") in wanted]

    def get_group_pathways(self, pathway_id):
        self._check()
        return [row for row in self.group_pathways if row.get("pathway_id") == pathway_id]

    def get_standalone_course_ids(self, pathway_id):
        self._check()
        return [cid for pid, cid in self.standalone if pid == pathway_id]

    def list_colleges(self):
        self._check()
        return list(self.colleges)

    def get_pathways_for_college(self, college_id):
        self._check()
        return [row for row in self.pathways if row.get("college_id") == college_id]

    def get_pathways_by_name(self, name):
        self._check()
        return [row for row in self.pathways if row.get("name") == name]

    def get_degrees(self, degree_ids):
        self._check()
        wanted = set(degree_ids)
        return [row for row in self.degrees if row.get("degree_id") in wanted]

    def find_pathway(self, college_id, name, degree_id):
        self._check()
        for row in self.pathways:
            if (row.get("college_id") == college_id and row.get("name") == name
                    and row.get("degree_id") == degree_id):
                return row
        return None

    def clear_cache(self):
        return False

    def get_cache_stats(self):
        return {"connected": False}


@pytest.fixture
def make_catalog():
    """Factory for in-memory catalogs"""
    def _make(**kwargs):
        return InMemoryCatalog(**kwargs)
    return _make


@pytest.fixture
def planner_catalog():
    """
    A small catalog shared by planner tests.

    CS00200 needs CS00101; CS00300 needs CS00200; MA00210 needs 2 of
    MA00101, MA00102, MA00103; CS00400 needs any SC00ANTH course.
    """
    return InMemoryCatalog(
        courses={
            "CS00101": "CS 101",
            "CS00200": "CS 200",
            "CS00300": "CS 300",
            "CS00400": "CS 400",
            "MA00101": "MATH 101",
            "MA00102": "MATH 102",
            "MA00103": "MATH 103",
            "MA00210": "MATH 210",
            "SC00105": "ANTH 105",
            "SC00110": "ANTH 110",
            "SC00120": "PSYC 120",
        },
        prerequisite_groups=[
            {"group_id": 1, "course_id": "CS00200", "min_courses": 1},
            {"group_id": 2, "course_id": "CS00300", "min_courses": 1},
            {"group_id": 3, "course_id": "MA00210", "min_courses": 2},
            {"group_id": 4, "course_id": "CS00400", "min_courses": 1},
        ],
        prerequisite_members=[
            (1, "CS00101"),
            (2, "CS00200"),
            (3, "MA00101"),
            (3, "MA00102"),
            (3, "MA00103"),
            (4, "SC00ANTH"),
        ],
        availability=[
            {"college_id": 1, "course_id": "CS00101", "Fall": True, "Winter": False, "Spring": True, "Summer": False},
            {"college_id": 1, "course_id": "CS00200", "Fall": False, "Winter": True, "Spring": False, "Summer": False},
            {"college_id": 1, "course_id": "SC00105", "Fall": True, "Winter": False, "Spring": False, "Summer": False},
            {"college_id": 1, "course_id": "SC00110", "Fall": 0, "Winter": 0, "Spring": 1, "Summer": 0},
            {"college_id": 2, "course_id": "CS00101", "Fall": False, "Winter": False, "Spring": False, "Summer": True},
        ],
    )
