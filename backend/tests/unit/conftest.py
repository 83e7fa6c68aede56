"""
Unit test fixtures
"""

import pytest
import sys
from pathlib import Path

# Add backend to path for imports
backend_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(backend_dir))

from services.prerequisites import CourseRef, OutstandingRequirement, ScheduleItem


@pytest.fixture
def item():
    """Factory for schedule items: item("CS00101", "CS 101", 0, "Fall")"""
    def _item(course_id, code, term_index, term_name="Fall"):
        return ScheduleItem(
            course=CourseRef(course_id=course_id, code=code),
            term_index=term_index,
            term_name=term_name
        )
    return _item


@pytest.fixture
def req():
    """Factory for outstanding requirements"""
    def _req(course_id, code, availability=""):
        return OutstandingRequirement(course_id=course_id, code=code, availability=availability)
    return _req


@pytest.fixture
def sample_quarters():
    """Filled planner quarters with a standalone slot and a group slot"""
    return [
        {
            "name": "Fall",
            "year": "2025",
            "isPlaceholder": False,
            "slots": [
                {"course": {"course_id": "CS00101", "code": "CS 101"}},
                {
                    "course": {"group_id": 7, "description": "Elective"},
                    "groupKey": "7-1",
                    "chosenCourse": {"course_id": "SC00105", "code": "ANTH 105"}
                },
                {}
            ]
        },
        {
            "name": "Winter",
            "year": "2025",
            "isPlaceholder": False,
            "slots": [
                {"course": {"course_id": "CS00200", "code": "CS 200"}},
                {},
                {}
            ]
        }
    ]
