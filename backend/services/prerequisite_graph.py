"""
Prerequisite Graph

Builds the dependency graph a planner verification runs on and orders it.

Nodes are the scheduled courses plus every prerequisite group member that is
still an outstanding (tracked) requirement. Edges run from each prerequisite
member to its dependent course. ANY members add no edges, and a subject
pattern never links two dependents that both require it. Groups are loaded
for the scheduled courses and then, transitively, for unscheduled tracked
members so the chain check can see beyond one hop.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from services.resolver import CatalogResolver, ResolvedToken


Edge = Tuple[str, str]


@dataclass
class PrerequisiteGroup:
    """Take at least min_courses of members before course_id"""
    group_id: Any
    course_id: Optional[str]  # None for orphaned member rows
    min_courses: int
    members: List[ResolvedToken] = field(default_factory=list)

    @property
    def member_ids(self) -> List[str]:
        return [m.raw for m in self.members]

    @property
    def is_orphan(self) -> bool:
        return self.course_id is None

    def matches(self, course_id: str) -> bool:
        """True if course_id satisfies any member of this group"""
        return any(m.matches(course_id) for m in self.members)


@dataclass
class DependencyGraph:
    """Nodes, edges and the groups they were built from"""
    nodes: List[str]
    edges: List[Edge]
    groups: List[PrerequisiteGroup]

    def __post_init__(self):
        self._node_set = set(self.nodes)
        self._by_course: Dict[str, List[PrerequisiteGroup]] = {}
        for group in self.groups:
            if group.course_id is not None:
                self._by_course.setdefault(group.course_id, []).append(group)

    def groups_for(self, course_id: str) -> List[PrerequisiteGroup]:
        """Prerequisite groups whose dependent is course_id"""
        return self._by_course.get(course_id, [])

    @property
    def resident_edges(self) -> List[Edge]:
        """Edges whose endpoints are both graph nodes"""
        return [(u, v) for u, v in self.edges if u in self._node_set and v in self._node_set]


class PrerequisiteGraphBuilder:
    """Loads prerequisite groups from the catalog and assembles the graph"""

    def __init__(self, catalog, resolver: Optional[CatalogResolver] = None):
        self.catalog = catalog
        self.resolver = resolver or CatalogResolver(catalog)

    def build(self, scheduled_ids: Iterable[str], tracked_ids: Iterable[str]) -> DependencyGraph:
        """
        Build the dependency graph for a schedule.

        Args:
            scheduled_ids: Course ids placed in the plan, in schedule order
            tracked_ids: Outstanding requirement course ids

        Returns:
            DependencyGraph (never raises on inconsistent data; catalog
            failures propagate)
        """
        scheduled = list(dict.fromkeys(scheduled_ids))
        tracked = list(dict.fromkeys(tracked_ids))
        scheduled_set = set(scheduled)
        tracked_set = set(tracked)
        candidates = scheduled + [t for t in tracked if t not in scheduled_set]

        groups = self._load_groups(scheduled, scheduled_set, tracked)

        nodes = list(scheduled)
        node_set = set(nodes)
        for group in groups:
            for member in group.members:
                for course_id in member.matching(tracked, exclude=group.course_id):
                    if course_id not in node_set:
                        node_set.add(course_id)
                        nodes.append(course_id)

        peers = self._wildcard_peers(groups)
        edges: List[Edge] = []
        for group in groups:
            if group.is_orphan:
                continue
            for member in group.members:
                if member.matches_all:
                    continue
                if member.token.is_wildcard:
                    sources = [
                        course_id for course_id in member.matching(candidates, exclude=group.course_id)
                        if course_id not in peers[member.raw]
                    ]
                else:
                    sources = [member.raw]
                edges.extend((source, group.course_id) for source in sources)

        return DependencyGraph(nodes=nodes, edges=edges, groups=groups)

    @staticmethod
    def _wildcard_peers(groups: List[PrerequisiteGroup]) -> Dict[str, Set[str]]:
        """Dependents sharing each wildcard member; they never order each other"""
        peers: Dict[str, Set[str]] = {}
        for group in groups:
            if group.is_orphan:
                continue
            for member in group.members:
                if member.token.is_wildcard:
                    peers.setdefault(member.raw, set()).add(group.course_id)
        return peers

    def _load_groups(
        self,
        scheduled: List[str],
        scheduled_set: Set[str],
        tracked: List[str]
    ) -> List[PrerequisiteGroup]:
        """Fetch groups for the schedule, then for unscheduled tracked members"""
        groups: List[PrerequisiteGroup] = []
        loaded: Set[str] = set()
        frontier = list(scheduled)

        while frontier:
            batch = [course_id for course_id in frontier if course_id not in loaded]
            if not batch:
                break
            loaded.update(batch)

            group_rows = self.catalog.get_prerequisite_groups(batch)
            group_ids = [row["group_id"] for row in group_rows]
            member_rows = self.catalog.get_prerequisite_group_members(group_ids) if group_ids else []
            new_groups = self._assemble(group_rows, member_rows)
            groups.extend(new_groups)

            frontier = []
            for group in new_groups:
                for member in group.members:
                    for course_id in member.matching(tracked, exclude=group.course_id):
                        if course_id not in scheduled_set and course_id not in loaded:
                            frontier.append(course_id)

        return groups

    def _assemble(self, group_rows: List[Dict], member_rows: List[Dict]) -> List[PrerequisiteGroup]:
        """Attach member rows to their groups; unknown group ids become orphans"""
        by_id: Dict[Any, PrerequisiteGroup] = {}
        for row in group_rows:
            by_id[row["group_id"]] = PrerequisiteGroup(
                group_id=row["group_id"],
                course_id=row.get("course_id"),
                min_courses=int(row.get("min_courses") or 0)
            )

        orphans: Dict[Any, PrerequisiteGroup] = {}
        for row in member_rows:
            prereq_id = row.get("prereq_id")
            if not prereq_id:
                continue
            group = by_id.get(row["group_id"])
            if group is None:
                group = orphans.setdefault(
                    row["group_id"],
                    PrerequisiteGroup(group_id=row["group_id"], course_id=None, min_courses=0)
                )
            group.members.append(self.resolver.resolve(prereq_id))

        return list(by_id.values()) + list(orphans.values())


def topological_sort(nodes: List[str], edges: List[Edge]) -> Tuple[List[str], bool]:
    """
    Kahn's algorithm over the graph nodes.

    Only edges between two nodes count toward in-degree. The queue is FIFO
    and seeded in node order, so ties keep insertion order.

    Returns:
        (ordered nodes, has_cycle) where has_cycle means some nodes never
        reached zero in-degree and are missing from the order
    """
    node_set = set(nodes)
    in_degree = {node: 0 for node in nodes}
    successors: Dict[str, List[str]] = {node: [] for node in nodes}

    for source, target in edges:
        if source in node_set and target in node_set:
            in_degree[target] += 1
            successors[source].append(target)

    queue = deque(node for node in nodes if in_degree[node] == 0)
    ordered = []

    while queue:
        node = queue.popleft()
        ordered.append(node)
        for target in successors[node]:
            in_degree[target] -= 1
            if in_degree[target] == 0:
                queue.append(target)

    return ordered, len(ordered) < len(node_set)
