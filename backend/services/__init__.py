from .cache import RedisCache, get_cache, is_cache_available
from .catalog import CatalogService, CatalogError, get_catalog_service
from .resolver import CatalogResolver, ResolvedToken, MemberExpansion
from .prerequisite_graph import DependencyGraph, PrerequisiteGraphBuilder, PrerequisiteGroup, topological_sort
from .prerequisites import PlannerVerifier, VerificationResult, InvalidPlanError
from .availability import AvailabilityService
from .pathways import PathwayService, PathwayNotFoundError
