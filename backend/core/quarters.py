"""
Quarter Planning Utilities

Planner Quarter Logic:
- Quarters cycle Fall -> Winter -> Spring -> Summer
- The plan year increments after each Winter quarter
- Skipped Summers are kept as empty placeholder cards and do not count
  toward the number of quarters needed

Term indexes are assigned by position in the plan, not by calendar
arithmetic: every course in the same quarter shares the same index.
"""

import math
from typing import Any, Dict, List, Optional, Union

from core.config import PLANNER_SLOTS_PER_QUARTER
from core.parsers import TERM_NAMES, normalize_term_name


class QuarterManager:
    """Builds planner quarters and flattens them into a schedule"""

    QUARTER_ORDER = TERM_NAMES

    @staticmethod
    def next_quarter(name: str, year: int) -> Dict[str, Union[str, int]]:
        """
        Get the quarter that follows the given one.

        Example: ("Winter", 2025) -> {"name": "Spring", "year": 2026}
        """
        name = normalize_term_name(name)
        index = QuarterManager.QUARTER_ORDER.index(name)
        next_name = QuarterManager.QUARTER_ORDER[(index + 1) % len(QuarterManager.QUARTER_ORDER)]
        next_year = year + 1 if name == "Winter" else year
        return {"name": next_name, "year": next_year}

    @staticmethod
    def quarters_needed(total_courses: int, slots_per_quarter: Optional[int] = None) -> int:
        """Number of quarters needed to fit every remaining course"""
        slots = slots_per_quarter or PLANNER_SLOTS_PER_QUARTER
        if total_courses <= 0:
            return 0
        return math.ceil(total_courses / slots)

    @staticmethod
    def generate_quarters(
        start_quarter: str,
        year: int,
        total_courses: int,
        skip_summer: bool = False,
        slots_per_quarter: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Generate the empty quarter cards for a plan.

        Args:
            start_quarter: First quarter name (Fall, Winter, Spring, Summer)
            year: Year label of the first quarter
            total_courses: Remaining standalone + group requirements to place
            skip_summer: Emit Summers as placeholders that hold no slots
            slots_per_quarter: Course slots per quarter (default from config)

        Returns:
            List of {"name", "year", "slots", "isPlaceholder"} dicts
        """
        slots = slots_per_quarter or PLANNER_SLOTS_PER_QUARTER
        needed = QuarterManager.quarters_needed(total_courses, slots)

        quarters = []
        name = normalize_term_name(start_quarter)
        current_year = year
        added = 0

        while added < needed:
            if name == "Summer" and skip_summer:
                quarters.append({
                    "name": name,
                    "year": str(current_year),
                    "slots": [],
                    "isPlaceholder": True
                })
            else:
                quarters.append({
                    "name": name,
                    "year": str(current_year),
                    "slots": [{} for _ in range(slots)],
                    "isPlaceholder": False
                })
                added += 1

            following = QuarterManager.next_quarter(name, current_year)
            name, current_year = following["name"], following["year"]

        return quarters

    @staticmethod
    def build_schedule(quarters: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Flatten filled quarters into verification schedule items.

        Standalone slots carry their course directly; group slots contribute
        the course the user chose for the group. Slots without a course (or
        groups without a chosen course) are skipped.

        Returns:
            List of {"course": {"course_id", "code"}, "termIndex", "termName"}
        """
        schedule = []

        for term_index, quarter in enumerate(quarters):
            term_name = normalize_term_name(quarter.get("name", ""))
            for slot in quarter.get("slots", []):
                course = slot.get("course")
                if not course:
                    continue

                if slot.get("groupKey") or "course_id" not in course:
                    course = slot.get("chosenCourse")
                    if not course or not course.get("course_id"):
                        continue

                schedule.append({
                    "course": {"course_id": course["course_id"], "code": course.get("code", "")},
                    "termIndex": term_index,
                    "termName": term_name
                })

        return schedule

    @staticmethod
    def has_unchosen_groups(quarters: List[Dict[str, Any]]) -> bool:
        """True if any group slot still needs a chosen course"""
        for quarter in quarters:
            for slot in quarter.get("slots", []):
                if slot.get("groupKey"):
                    chosen = slot.get("chosenCourse") or {}
                    if not chosen.get("course_id"):
                        return True
        return False
