"""
Pathway Service

Colleges, pathways, degrees and the requirements a pathway is made of.
Also validates free-text course codes a student enters for a requirement
group against the group's concrete and placeholder members.
"""

from typing import List, Dict, Any

from core.parsers import TokenKind, parse_course_token
from services.catalog import get_catalog_service


class PathwayNotFoundError(Exception):
    """Raised when no pathway matches a college + name + degree."""
    def __init__(self, message: str, college_id: Any = None, name: str = "", degree_id: Any = None):
        super().__init__(message)
        self.college_id = college_id
        self.name = name
        self.degree_id = degree_id


class PathwayService:
    """Read-only pathway and requirement queries"""

    def __init__(self, catalog=None):
        self.catalog = catalog or get_catalog_service()

    def list_colleges(self) -> List[Dict[str, Any]]:
        """All colleges, sorted by name"""
        return sorted(self.catalog.list_colleges(), key=lambda c: c.get("name", ""))

    def list_pathway_names(self, college_id: Any) -> List[Dict[str, str]]:
        """Distinct pathway names offered by a college"""
        names = {row.get("name") for row in self.catalog.get_pathways_for_college(college_id) if row.get("name")}
        return [{"name": name} for name in sorted(names)]

    def list_degrees_for_pathway(self, pathway_name: str) -> List[Dict[str, Any]]:
        """Distinct degrees a pathway name leads to, sorted by degree name"""
        degree_ids = [row.get("degree_id") for row in self.catalog.get_pathways_by_name(pathway_name)]
        degrees = {
            row.get("degree_id"): {
                "degree_id": row.get("degree_id"),
                "code": row.get("code"),
                "name": row.get("name", "")
            }
            for row in self.catalog.get_degrees(degree_ids)
        }
        return sorted(degrees.values(), key=lambda d: d["name"])

    def get_pathway_id(self, college_id: Any, pathway_name: str, degree_id: Any) -> Dict[str, Any]:
        """
        Look up a pathway id.

        Raises:
            PathwayNotFoundError: If the combination does not exist
        """
        pathway = self.catalog.find_pathway(college_id, pathway_name, degree_id)
        if not pathway:
            raise PathwayNotFoundError(
                "Pathway not found", college_id=college_id, name=pathway_name, degree_id=degree_id
            )
        return {"pathway_id": pathway.get("pathway_id")}

    def get_pathway_requirements(self, pathway_id: Any) -> Dict[str, List[Dict[str, Any]]]:
        """
        Requirements of a pathway, split into standalone courses and groups.

        A group required several times is expanded into one entry per
        instance, e.g. "Elective (1)", "Elective (2)" with group_instance
        "7-1", "7-2".
        """
        standalone_ids = self.catalog.get_standalone_course_ids(pathway_id)
        standalone = sorted(
            self.catalog.get_courses(standalone_ids) if standalone_ids else [],
            key=lambda c: c["code"]
        )

        links = self.catalog.get_group_pathways(pathway_id)
        descriptions = {
            row.get("group_id"): row.get("description", "")
            for row in (self.catalog.get_requirement_groups([link.get("group_id") for link in links]) if links else [])
        }

        instances = []
        for link in links:
            group_id = link.get("group_id")
            if group_id not in descriptions:
                continue
            count = int(link.get("instances") or 1)
            for k in range(1, count + 1):
                description = descriptions[group_id]
                if count > 1:
                    description = f"{description} ({k})"
                instances.append((description, k, {
                    "group_id": group_id,
                    "description": description,
                    "group_instance": f"{group_id}-{k}"
                }))

        instances.sort(key=lambda entry: (entry[0], entry[1]))

        return {
            "standaloneRequirements": standalone,
            "groupRequirements": [entry[2] for entry in instances]
        }

    def validate_group_course(self, group_id: Any, course_code: str) -> Dict[str, Any]:
        """
        Check whether a course code entered by the student satisfies a group.

        A direct match on a concrete member is accepted. Otherwise each
        placeholder member is tried: ANY accepts any course with the same
        id prefix, a subject pattern also requires the code to start with it.

        Returns:
            {"valid": True, "course": {...}} or {"valid": False, "message": ...}
        """
        code_input = (course_code or "").strip().upper()

        entered = self.catalog.find_courses_by_code(code_input)
        if not entered:
            return {"valid": False, "message": f"Course code {code_input} does not exist"}

        member_ids = [row["course_id"] for row in self.catalog.get_requirement_group_courses([group_id])]
        members = self.catalog.get_courses(member_ids) if member_ids else []
        if not members:
            return {"valid": False, "message": "No courses found in this group"}

        placeholders = [m for m in members if parse_course_token(m["course_id"]).is_wildcard]
        placeholder_ids = {m["course_id"] for m in placeholders}

        for member in members:
            if member["course_id"] in placeholder_ids:
                continue
            if any(a["course_id"] == member["course_id"] and a["code"] == member["code"] for a in entered):
                return {"valid": True, "course": member}

        if not placeholders:
            return {"valid": False, "message": "No valid courses in group to match"}

        for member in placeholders:
            token = parse_course_token(member["course_id"])
            for course in entered:
                if not course["course_id"].startswith(token.prefix):
                    continue
                if token.kind is TokenKind.ANY_IN_PREFIX:
                    return {"valid": True, "course": course}
                if token.pattern != code_input and course["code"].upper().startswith(token.pattern):
                    return {"valid": True, "course": course}

        return {"valid": False, "message": f"Course {code_input} does not satisfy group requirements"}
