"""
Planner Verification Engine

Checks a term-by-term course plan against prerequisite groups.
Every prerequisite gap is classified as either:
- a violation: the missing course is an outstanding requirement the
  student still tracks (and so must plan for), or it is scheduled too late
- an advisory: the missing course is not tracked, the course may not be
  offered in its scheduled term, or the catalog data is inconsistent

Also returns a suggested completion order for outstanding requirements.
"""

from typing import List, Dict, Any, Optional, Set, Tuple
from dataclasses import dataclass, field

from core.parsers import TERM_NAMES, split_availability
from services.catalog import get_catalog_service
from services.prerequisite_graph import (
    DependencyGraph,
    PrerequisiteGraphBuilder,
    PrerequisiteGroup,
    topological_sort,
)
from services.resolver import CatalogResolver


class InvalidPlanError(ValueError):
    """Raised when a plan is not shaped like a schedule."""
    pass


@dataclass(frozen=True)
class CourseRef:
    """A catalog course as the planner refers to it"""
    course_id: str
    code: str

    def to_dict(self) -> Dict[str, str]:
        return {"course_id": self.course_id, "code": self.code}


@dataclass
class ScheduleItem:
    """One course placed in the plan"""
    course: CourseRef
    term_index: int  # position of the quarter in the plan, 0-based
    term_name: str   # Fall, Winter, Spring, Summer


@dataclass
class OutstandingRequirement:
    """A standalone requirement the student has not satisfied yet"""
    course_id: str
    code: str
    availability: str = ""  # "Fall, Spring", empty when unknown

    def to_dict(self) -> Dict[str, str]:
        return {"course_id": self.course_id, "code": self.code, "availability": self.availability}


@dataclass
class MissingPrerequisite:
    """A prerequisite the plan does not satisfy"""
    course_id: str
    code: str
    availability: str = ""
    tracked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course_id": self.course_id,
            "code": self.code,
            "availability": self.availability,
            "tracked": self.tracked
        }


@dataclass
class Violation:
    """A blocking problem with a scheduled course"""
    course: CourseRef
    message: str
    missing_prerequisites: List[MissingPrerequisite] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course": self.course.to_dict(),
            "message": self.message,
            "missingPrerequisites": [m.to_dict() for m in self.missing_prerequisites]
        }


@dataclass
class Advisory:
    """A non-blocking warning, optionally about a scheduled course"""
    message: str
    course: Optional[CourseRef] = None
    missing_prerequisites: List[MissingPrerequisite] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course": self.course.to_dict() if self.course else None,
            "message": self.message,
            "missingPrerequisites": [m.to_dict() for m in self.missing_prerequisites]
        }


@dataclass
class VerificationDetails:
    """Graph statistics"""
    nodes_count: int
    edges_count: int
    has_cycle: bool


@dataclass
class VerificationResult:
    """Complete verification result for a plan"""
    violations: List[Violation]
    advisories: List[Advisory]
    suggested_order: List[OutstandingRequirement]
    details: VerificationDetails

    def to_dict(self) -> Dict[str, Any]:
        return {
            "violations": [v.to_dict() for v in self.violations],
            "advisories": [a.to_dict() for a in self.advisories],
            "suggestedOrder": [r.to_dict() for r in self.suggested_order],
            "details": {
                "nodesCount": self.details.nodes_count,
                "edgesCount": self.details.edges_count,
                "topoHasCycle": self.details.has_cycle
            }
        }


class _PlanContext:
    """Per-call lookups shared by the checks"""

    def __init__(
        self,
        schedule: List[ScheduleItem],
        outstanding: List[OutstandingRequirement],
        graph: DependencyGraph,
        catalog_codes: Dict[str, str]
    ):
        self.graph = graph
        self.tracked: Dict[str, OutstandingRequirement] = {}
        for req in outstanding:
            self.tracked.setdefault(req.course_id, req)

        # A course placed twice counts from its earliest term
        self.term_of: Dict[str, int] = {}
        self.scheduled_codes: Dict[str, str] = {}
        for item in schedule:
            cid = item.course.course_id
            if cid not in self.term_of or item.term_index < self.term_of[cid]:
                self.term_of[cid] = item.term_index
            self.scheduled_codes.setdefault(cid, item.course.code)

        self.catalog_codes = catalog_codes

    def is_scheduled(self, course_id: str) -> bool:
        return course_id in self.term_of

    def code(self, course_id: str) -> str:
        """Display code: tracked record, then schedule, then catalog, then id"""
        if course_id in self.tracked:
            return self.tracked[course_id].code
        if course_id in self.scheduled_codes:
            return self.scheduled_codes[course_id]
        return self.catalog_codes.get(course_id, course_id)

    def missing(self, course_id: str) -> MissingPrerequisite:
        req = self.tracked.get(course_id)
        if req:
            return MissingPrerequisite(
                course_id=course_id, code=req.code, availability=req.availability, tracked=True
            )
        return MissingPrerequisite(course_id=course_id, code=self.code(course_id))

    def scheduled_matches(self, group: PrerequisiteGroup, before: Optional[int] = None) -> List[str]:
        """Distinct scheduled courses satisfying the group, optionally only earlier ones"""
        return [
            cid for cid, term in self.term_of.items()
            if cid != group.course_id
            and group.matches(cid)
            and (before is None or term < before)
        ]


class PlannerVerifier:
    """
    Verifies a term-by-term plan against prerequisite groups.

    Features:
    - Resolve wildcard group members (ANY / subject patterns)
    - Build the prerequisite dependency graph
    - Topologically order it with cycle detection
    - Classify unmet prerequisites as violations or advisories
    - Flag courses scheduled outside their offered terms
    """

    def __init__(self, catalog=None):
        self.catalog = catalog or get_catalog_service()

    def verify(
        self,
        schedule: List[ScheduleItem],
        outstanding: List[OutstandingRequirement]
    ) -> VerificationResult:
        """
        Verify a plan.

        Args:
            schedule: Courses placed in the plan
            outstanding: Requirements still to be satisfied, with availability

        Returns:
            VerificationResult

        Raises:
            InvalidPlanError: If the inputs are not shaped like a plan
            CatalogError: If catalog data cannot be loaded
        """
        self._validate(schedule, outstanding)

        resolver = CatalogResolver(self.catalog)
        builder = PrerequisiteGraphBuilder(self.catalog, resolver)
        graph = builder.build(
            [item.course.course_id for item in schedule],
            [req.course_id for req in outstanding]
        )

        ordered, has_cycle = topological_sort(graph.nodes, graph.edges)

        ctx = _PlanContext(schedule, outstanding, graph, self._lookup_codes(graph))

        violations: List[Violation] = []
        advisories: List[Advisory] = []

        for item in schedule:
            reported = self._check_groups(item, ctx, violations, advisories)
            self._check_chain(item, ctx, reported, violations)
            self._check_term(item, ctx, advisories)

        for group in graph.groups:
            if group.is_orphan:
                advisories.append(Advisory(
                    message=f"Database inconsistency: prerequisite group {group.group_id} "
                            f"has no dependent course",
                    missing_prerequisites=[ctx.missing(m) for m in group.member_ids]
                ))

        if has_cycle:
            # Message lists the partial order; the blocked nodes are attached
            ordered_set = set(ordered)
            blocked = [node for node in graph.nodes if node not in ordered_set]
            advisories.append(Advisory(
                message="Database inconsistency, circular prerequisite group: "
                        + ", ".join(ctx.code(node) for node in ordered),
                missing_prerequisites=[ctx.missing(node) for node in blocked]
            ))

        result = VerificationResult(
            violations=violations,
            advisories=advisories,
            suggested_order=[ctx.tracked[node] for node in ordered if node in ctx.tracked],
            details=VerificationDetails(
                nodes_count=len(graph.nodes),
                edges_count=len(graph.resident_edges),
                has_cycle=has_cycle
            )
        )

        print(
            f"[Verify] {result.details.nodes_count} nodes, {result.details.edges_count} edges, "
            f"cycle={has_cycle}: {len(violations)} violations, {len(advisories)} advisories"
        )
        return result

    def _validate(self, schedule, outstanding):
        if not isinstance(schedule, list) or not isinstance(outstanding, list):
            raise InvalidPlanError("schedule and outstanding requirements must be lists")

        for item in schedule:
            if not isinstance(item, ScheduleItem):
                raise InvalidPlanError(f"Invalid schedule item: {item!r}")
            if item.term_index < 0:
                raise InvalidPlanError(f"{item.course.code}: term index must be >= 0")
            if item.term_name not in TERM_NAMES:
                raise InvalidPlanError(f"{item.course.code}: unknown term {item.term_name}")

        for req in outstanding:
            if not isinstance(req, OutstandingRequirement):
                raise InvalidPlanError(f"Invalid outstanding requirement: {req!r}")

    def _lookup_codes(self, graph: DependencyGraph) -> Dict[str, str]:
        """Catalog codes for every id the messages may mention"""
        ids = list(graph.nodes)
        for group in graph.groups:
            ids.extend(group.member_ids)
        return self.catalog.get_course_codes(dict.fromkeys(ids)) if ids else {}

    # --- Group check ---

    def _check_groups(
        self,
        item: ScheduleItem,
        ctx: _PlanContext,
        violations: List[Violation],
        advisories: List[Advisory]
    ) -> Set[str]:
        """
        Check every prerequisite group of a scheduled course.

        Returns:
            Ids already reported as missing, so the chain check skips them
        """
        course = item.course
        reported: Set[str] = set()

        for group in ctx.graph.groups_for(course.course_id):
            satisfied = ctx.scheduled_matches(group, before=item.term_index)

            if len(satisfied) < group.min_courses:
                tracked_missing, untracked_missing = self._partition_unmet(group, item.term_index, ctx)

                if tracked_missing:
                    violations.append(Violation(
                        course=course,
                        message=f"Require {group.min_courses} out of these courses: "
                                + ", ".join(ctx.code(m) for m in group.member_ids),
                        missing_prerequisites=tracked_missing
                    ))

                if untracked_missing:
                    advisories.append(Advisory(
                        course=course,
                        message=f"Make sure you have taken "
                                f"{', '.join(m.code for m in untracked_missing)} for {course.code}",
                        missing_prerequisites=untracked_missing
                    ))

                reported.update(m.course_id for m in tracked_missing + untracked_missing)

            if group.min_courses > len(group.members):
                advisories.append(Advisory(
                    course=course,
                    message=f"Database inconsistency: group requires {group.min_courses} "
                            f"but only {len(group.members)} listed"
                ))

            late = [
                member.raw for member in group.members
                if not member.token.is_wildcard
                and ctx.is_scheduled(member.raw)
                and member.raw != course.course_id
                and ctx.term_of[member.raw] >= item.term_index
            ]
            if late:
                violations.append(Violation(
                    course=course,
                    message=f"{', '.join(ctx.code(m) for m in late)} must be scheduled earlier "
                            f"than {course.code}",
                    missing_prerequisites=[ctx.missing(m) for m in late]
                ))

        return reported

    def _partition_unmet(
        self,
        group: PrerequisiteGroup,
        term_index: int,
        ctx: _PlanContext
    ) -> Tuple[List[MissingPrerequisite], List[MissingPrerequisite]]:
        """
        Split a group's unmet members into tracked and untracked.

        Concrete members scheduled at any term are left to the late check.
        A wildcard member is unmet unless a matching course is scheduled
        before term_index; it then stands for its unscheduled tracked
        matches, or for itself when nothing tracked matches.
        """
        tracked: List[MissingPrerequisite] = []
        untracked: List[MissingPrerequisite] = []
        seen: Set[str] = set()

        for member in group.members:
            if member.token.is_wildcard:
                if any(
                    member.matches(cid) and term < term_index
                    for cid, term in ctx.term_of.items()
                    if cid != group.course_id
                ):
                    continue
                matches = [
                    cid for cid in member.matching(ctx.tracked, exclude=group.course_id)
                    if not ctx.is_scheduled(cid)
                ]
                if matches:
                    for cid in matches:
                        if cid not in seen:
                            seen.add(cid)
                            tracked.append(ctx.missing(cid))
                elif member.raw not in seen:
                    seen.add(member.raw)
                    untracked.append(ctx.missing(member.raw))
                continue

            cid = member.raw
            if ctx.is_scheduled(cid) or cid in seen:
                continue
            seen.add(cid)
            if cid in ctx.tracked:
                tracked.append(ctx.missing(cid))
            else:
                untracked.append(ctx.missing(cid))

        return tracked, untracked

    # --- Chain check ---

    def _chain_prerequisites(self, course_id: str, ctx: _PlanContext) -> List[str]:
        """Tracked prerequisites of course_id from groups not yet met by the plan"""
        prerequisites = []
        for group in ctx.graph.groups_for(course_id):
            if len(ctx.scheduled_matches(group)) >= group.min_courses:
                continue
            for member in group.members:
                prerequisites.extend(member.matching(ctx.tracked, exclude=course_id))
        return prerequisites

    def _collect_missing_chain(self, course_id: str, ctx: _PlanContext) -> List[str]:
        """
        Walk prerequisites transitively (depth-first, first-seen order).

        Collects every unscheduled tracked ancestor. The visited set stops
        the walk on circular prerequisite data.
        """
        result: List[str] = []
        seen: Set[str] = set()
        visited = {course_id}
        stack = [iter(self._chain_prerequisites(course_id, ctx))]

        while stack:
            prereq = next(stack[-1], None)
            if prereq is None:
                stack.pop()
                continue
            if ctx.is_scheduled(prereq) or prereq not in ctx.tracked:
                continue
            if prereq not in seen:
                seen.add(prereq)
                result.append(prereq)
            if prereq not in visited:
                visited.add(prereq)
                stack.append(iter(self._chain_prerequisites(prereq, ctx)))

        return result

    def _check_chain(
        self,
        item: ScheduleItem,
        ctx: _PlanContext,
        reported: Set[str],
        violations: List[Violation]
    ):
        """Report transitive tracked prerequisites the group check did not cover"""
        chain = [cid for cid in self._collect_missing_chain(item.course.course_id, ctx) if cid not in reported]
        if chain:
            violations.append(Violation(
                course=item.course,
                message=f"{item.course.code} missing prerequisites",
                missing_prerequisites=[ctx.missing(cid) for cid in chain]
            ))

    # --- Term availability check ---

    def _check_term(self, item: ScheduleItem, ctx: _PlanContext, advisories: List[Advisory]):
        """Availability mismatches are advisories only"""
        req = ctx.tracked.get(item.course.course_id)
        tokens = split_availability(req.availability if req else "")

        if tokens and item.term_name.lower() not in tokens:
            advisories.append(Advisory(
                course=item.course,
                message=f"This {item.course.code} is not scheduled on {item.term_name} "
                        f"(offered {req.availability})"
            ))
        elif not tokens:
            advisories.append(Advisory(
                course=item.course,
                message=f"This {item.course.code} might not be offered here"
            ))
