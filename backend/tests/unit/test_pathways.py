"""
Tests for services/pathways.py - Pathway lookups and group validation
"""

import pytest

from services.pathways import PathwayNotFoundError, PathwayService


@pytest.fixture
def pathway_catalog(make_catalog):
    return make_catalog(
        courses={
            "CS00101": "CS 101",
            "CS00200": "CS 200",
            "SC00105": "ANTH 105",
            "SC00120": "PSYC 120",
            "HU00300": "HIST 300",
            "SC00ANTH": "ANTH",
            "CS000ANY": "CS ANY",
        },
        colleges=[
            {"college_id": 2, "name": "Valley College"},
            {"college_id": 1, "name": "City College"},
        ],
        pathways=[
            {"pathway_id": 100, "college_id": 1, "name": "Computer Science", "degree_id": 5},
            {"pathway_id": 101, "college_id": 1, "name": "Computer Science", "degree_id": 6},
            {"pathway_id": 102, "college_id": 1, "name": "Anthropology", "degree_id": 5},
            {"pathway_id": 200, "college_id": 2, "name": "Computer Science", "degree_id": 5},
        ],
        degrees=[
            {"degree_id": 5, "code": "BS", "name": "Bachelor of Science"},
            {"degree_id": 6, "code": "AA", "name": "Associate of Arts"},
        ],
        standalone=[(100, "CS00200"), (100, "CS00101")],
        requirement_groups=[
            {"group_id": 7, "description": "Social Science"},
            {"group_id": 8, "description": "Elective"},
        ],
        group_pathways=[
            {"pathway_id": 100, "group_id": 7, "instances": 1},
            {"pathway_id": 100, "group_id": 8, "instances": 2},
        ],
        requirement_group_courses=[
            (7, "SC00ANTH"),
            (7, "CS00101"),
            (8, "CS000ANY"),
            (9, "HU00300"),
        ],
    )


class TestPathwayLookups:
    """Tests for college/pathway/degree queries"""

    def test_colleges_sorted_by_name(self, pathway_catalog):
        result = PathwayService(pathway_catalog).list_colleges()

        assert [c["name"] for c in result] == ["City College", "Valley College"]

    def test_distinct_pathway_names(self, pathway_catalog):
        result = PathwayService(pathway_catalog).list_pathway_names(1)

        assert result == [{"name": "Anthropology"}, {"name": "Computer Science"}]

    def test_degrees_for_pathway(self, pathway_catalog):
        result = PathwayService(pathway_catalog).list_degrees_for_pathway("Computer Science")

        assert [d["code"] for d in result] == ["AA", "BS"]

    def test_get_pathway_id(self, pathway_catalog):
        result = PathwayService(pathway_catalog).get_pathway_id(1, "Computer Science", 6)

        assert result == {"pathway_id": 101}

    def test_get_pathway_id_not_found(self, pathway_catalog):
        with pytest.raises(PathwayNotFoundError) as exc_info:
            PathwayService(pathway_catalog).get_pathway_id(2, "Anthropology", 5)

        assert exc_info.value.college_id == 2
        assert exc_info.value.name == "Anthropology"


class TestPathwayRequirements:
    """Tests for requirement listing"""

    def test_standalone_sorted_by_code(self, pathway_catalog):
        result = PathwayService(pathway_catalog).get_pathway_requirements(100)

        assert [c["code"] for c in result["standaloneRequirements"]] == ["CS 101", "CS 200"]

    def test_group_instances_expanded(self, pathway_catalog):
        result = PathwayService(pathway_catalog).get_pathway_requirements(100)

        assert result["groupRequirements"] == [
            {"group_id": 8, "description": "Elective (1)", "group_instance": "8-1"},
            {"group_id": 8, "description": "Elective (2)", "group_instance": "8-2"},
            {"group_id": 7, "description": "Social Science", "group_instance": "7-1"},
        ]

    def test_pathway_without_requirements(self, pathway_catalog):
        result = PathwayService(pathway_catalog).get_pathway_requirements(999)

        assert result == {"standaloneRequirements": [], "groupRequirements": []}


class TestValidateGroupCourse:
    """Tests for free-text course validation against a group"""

    def test_concrete_member(self, pathway_catalog):
        result = PathwayService(pathway_catalog).validate_group_course(7, "cs 101")

        assert result == {"valid": True, "course": {"course_id": "CS00101", "code": "CS 101"}}

    def test_pattern_member(self, pathway_catalog):
        result = PathwayService(pathway_catalog).validate_group_course(7, "ANTH 105")

        assert result["valid"] is True
        assert result["course"]["course_id"] == "SC00105"

    def test_pattern_rejects_other_subject(self, pathway_catalog):
        result = PathwayService(pathway_catalog).validate_group_course(7, "PSYC 120")

        assert result["valid"] is False
        assert "does not satisfy" in result["message"]

    def test_any_member_accepts_prefix(self, pathway_catalog):
        result = PathwayService(pathway_catalog).validate_group_course(8, "CS 200")

        assert result == {"valid": True, "course": {"course_id": "CS00200", "code": "CS 200"}}

    def test_unknown_code(self, pathway_catalog):
        result = PathwayService(pathway_catalog).validate_group_course(7, "ZZZ 999")

        assert result == {"valid": False, "message": "Course code ZZZ 999 does not exist"}

    def test_group_without_courses(self, pathway_catalog):
        result = PathwayService(pathway_catalog).validate_group_course(42, "CS 101")

        assert result == {"valid": False, "message": "No courses found in this group"}

    def test_group_members_missing_from_catalog(self, pathway_catalog):
        result = PathwayService(pathway_catalog).validate_group_course(9, "CS 101")

        assert result["valid"] is False
        assert result["message"] == "No valid courses in group to match"
