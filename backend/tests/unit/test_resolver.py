"""
Tests for services/resolver.py - Wildcard member resolution
"""

import pytest

from services.resolver import CatalogResolver


class TestResolve:
    """Tests for single-token resolution"""

    @pytest.fixture
    def resolver(self, planner_catalog):
        return CatalogResolver(planner_catalog)

    def test_concrete_resolves_to_itself(self, resolver, planner_catalog):
        resolved = resolver.resolve("CS00101")

        assert resolved.course_ids == ["CS00101"]
        assert planner_catalog.prefix_lookups == []

    def test_any_is_never_enumerated(self, resolver, planner_catalog):
        resolved = resolver.resolve("CS000ANY")

        assert resolved.matches_all is True
        assert resolved.course_ids == []
        assert planner_catalog.prefix_lookups == []

    def test_pattern_expands_through_catalog(self, resolver):
        resolved = resolver.resolve("SC00ANTH")

        assert sorted(resolved.course_ids) == ["SC00105", "SC00110"]

    def test_pattern_expansion_is_memoised(self, resolver, planner_catalog):
        resolver.resolve("SC00ANTH")
        resolver.resolve("SC0ANTH")
        resolver.resolve("CS00101")

        assert planner_catalog.prefix_lookups == [("SC", "ANTH")]

    def test_pattern_without_matches(self, resolver):
        assert resolver.resolve("SC00HIST").course_ids == []


class TestResolvedTokenMatching:
    """Tests for matching candidates against resolved members"""

    @pytest.fixture
    def resolver(self, planner_catalog):
        return CatalogResolver(planner_catalog)

    def test_any_matches_by_prefix(self, resolver):
        resolved = resolver.resolve("CS000ANY")

        assert resolved.matches("CS00300")
        assert not resolved.matches("MA00101")

    def test_pattern_matches_expansion_only(self, resolver):
        resolved = resolver.resolve("SC00ANTH")

        assert resolved.matches("SC00105")
        assert not resolved.matches("SC00120")

    def test_matching_keeps_candidate_order(self, resolver):
        resolved = resolver.resolve("CS000ANY")

        result = resolved.matching(["CS00300", "MA00101", "CS00101"])

        assert result == ["CS00300", "CS00101"]

    def test_wildcard_excludes_dependent(self, resolver):
        resolved = resolver.resolve("CS000ANY")

        assert resolved.matching(["CS00200", "CS00300"], exclude="CS00300") == ["CS00200"]

    def test_concrete_matching(self, resolver):
        resolved = resolver.resolve("CS00101")

        assert resolved.matching(["CS00200", "CS00101"]) == ["CS00101"]
        assert resolved.matching({"CS00101": object()}) == ["CS00101"]


class TestExpandMembers:
    """Tests for group member union"""

    @pytest.fixture
    def resolver(self, planner_catalog):
        return CatalogResolver(planner_catalog)

    def test_union_is_deduplicated(self, resolver):
        expansion = resolver.expand_members(["SC00105", "SC00ANTH", "CS00101"])

        assert expansion.course_ids == ["SC00105", "SC00110", "CS00101"]
        assert expansion.is_unrestricted is False

    def test_any_short_circuits(self, resolver, planner_catalog):
        expansion = resolver.expand_members(["CS00101", "CS000ANY", "SC00ANTH"])

        assert expansion.is_unrestricted is True
        assert expansion.any_token.prefix == "CS"
        assert planner_catalog.prefix_lookups == []

    def test_empty_members(self, resolver):
        expansion = resolver.expand_members([])

        assert expansion.course_ids == []
        assert expansion.is_unrestricted is False
