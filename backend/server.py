"""
FastAPI Server for the Degree Pathway Planner API

Provides REST endpoints for the planner frontend: college/pathway/degree
selection, requirement availability, group course validation, quarter
generation and plan verification.

Usage:
    python server.py                    # Run server on port 4000
    python server.py --port 3001        # Custom port
    python server.py --reload           # Auto-reload for development
"""

import argparse
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from core.config import CORS_ORIGINS, initialize_firebase, get_firestore_client
from core.quarters import QuarterManager
from services.availability import AvailabilityService
from services.catalog import CatalogError, CatalogService, get_catalog_service
from services.pathways import PathwayNotFoundError, PathwayService
from services.prerequisites import (
    CourseRef,
    InvalidPlanError,
    OutstandingRequirement,
    PlannerVerifier,
    ScheduleItem,
)


TermName = Literal["Fall", "Winter", "Spring", "Summer"]


# Pydantic Models (API Schemas)

class CourseModel(BaseModel):
    course_id: str
    code: str = ""


class OutstandingRequirementModel(BaseModel):
    course_id: str
    code: str = ""
    availability: str = ""


class ScheduleItemModel(BaseModel):
    course: CourseModel
    termIndex: int = Field(..., ge=0)
    termName: TermName


class VerifyPlannerRequest(BaseModel):
    schedule: List[ScheduleItemModel]
    outstandingRequirements: List[OutstandingRequirementModel] = Field(
        default_factory=list,
        validation_alias=AliasChoices("outstandingRequirements", "remainingStandaloneCourses")
    )


class MissingPrerequisiteModel(BaseModel):
    course_id: str
    code: str
    availability: str = ""
    tracked: bool = False


class ViolationModel(BaseModel):
    course: CourseModel
    message: str
    missingPrerequisites: List[MissingPrerequisiteModel] = []


class AdvisoryModel(BaseModel):
    course: Optional[CourseModel] = None
    message: str
    missingPrerequisites: List[MissingPrerequisiteModel] = []


class VerifyDetailsModel(BaseModel):
    nodesCount: int
    edgesCount: int
    topoHasCycle: bool


class VerifyPlannerResponse(BaseModel):
    violations: List[ViolationModel]
    advisories: List[AdvisoryModel]
    suggestedOrder: List[OutstandingRequirementModel]
    details: VerifyDetailsModel


class RequirementsAvailabilityRequest(BaseModel):
    collegeId: Any
    standaloneCourseIds: List[str]
    groupIds: List[Any]


class GroupTermCoursesRequest(BaseModel):
    groupId: Any
    collegeId: Any
    term: str


class QuartersRequest(BaseModel):
    startQuarter: TermName
    year: int
    totalCourses: int = Field(..., ge=0)
    skipSummer: bool = False


class ScheduleFromQuartersRequest(BaseModel):
    quarters: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    status: str
    firebase: str
    redis: str


class CacheStatsResponse(BaseModel):
    connected: bool
    hits: int = 0
    misses: int = 0
    memory_used: str = "unknown"
    course_code_keys: int = 0
    prefix_match_keys: int = 0
    total_keys: int = 0


# App Lifespan (startup/shutdown)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown"""
    print("[Server] Initializing Firebase...")
    initialize_firebase()
    print("[Server] Ready!")

    yield

    print("[Server] Shutdown complete")


# FastAPI App

app = FastAPI(
    title="Degree Pathway Planner API",
    description="Pathway requirements, availability and plan verification",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    """Store failures abort the request with no partial result"""
    print(f"[Server] Catalog error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": f"Internal server error: {exc}"})


# Dependencies

def catalog_dependency() -> CatalogService:
    return get_catalog_service()


def verifier_dependency(catalog=Depends(catalog_dependency)) -> PlannerVerifier:
    return PlannerVerifier(catalog)


def availability_dependency(catalog=Depends(catalog_dependency)) -> AvailabilityService:
    return AvailabilityService(catalog)


def pathway_dependency(catalog=Depends(catalog_dependency)) -> PathwayService:
    return PathwayService(catalog)


# API Endpoints

@app.get("/", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    firebase_status = "connected"
    try:
        db = get_firestore_client()
        db.collection("metadata").document("health_check").get()
    except Exception as e:
        firebase_status = f"error: {str(e)[:50]}"

    redis_status = "unavailable"
    try:
        from services.cache import get_cache
        if get_cache().is_connected:
            redis_status = "connected"
    except Exception:
        redis_status = "unavailable"

    return HealthResponse(
        status="ok" if firebase_status == "connected" else "degraded",
        firebase=firebase_status,
        redis=redis_status
    )


@app.get("/api/health", response_model=HealthResponse)
async def api_health():
    """API health check"""
    return await health_check()


@app.get("/api/colleges")
async def list_colleges(pathways: PathwayService = Depends(pathway_dependency)):
    """List all colleges."""
    return pathways.list_colleges()


@app.get("/api/pathways/distinct")
async def list_pathway_names(
    collegeId: int = Query(..., description="College id"),
    pathways: PathwayService = Depends(pathway_dependency)
):
    """Distinct pathway names for a college."""
    return pathways.list_pathway_names(collegeId)


@app.get("/api/degrees/by-pathway")
async def list_degrees(
    pathwayName: str = Query(..., min_length=1, description="Pathway name"),
    pathways: PathwayService = Depends(pathway_dependency)
):
    """Degrees reachable through a pathway name."""
    return pathways.list_degrees_for_pathway(pathwayName)


@app.get("/api/pathway-id")
async def get_pathway_id(
    collegeId: int = Query(...),
    pathwayName: str = Query(..., min_length=1),
    degreeId: int = Query(...),
    pathways: PathwayService = Depends(pathway_dependency)
):
    """
    Get the pathway id for a college + pathway name + degree.
    """
    try:
        return pathways.get_pathway_id(collegeId, pathwayName, degreeId)
    except PathwayNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/api/pathway-requirements")
async def get_pathway_requirements(
    pathwayId: int = Query(...),
    pathways: PathwayService = Depends(pathway_dependency)
):
    """
    Requirements split into standalone courses and group instances.
    """
    return pathways.get_pathway_requirements(pathwayId)


@app.get("/api/groups/{group_id}/validate-v2")
async def validate_group_course(
    group_id: int,
    courseCode: str = Query(..., min_length=1),
    pathways: PathwayService = Depends(pathway_dependency)
):
    """
    Validate a free-text course code against a requirement group.

    Example: /api/groups/12/validate-v2?courseCode=ANTH%20101
    """
    return pathways.validate_group_course(group_id, courseCode)


@app.post("/api/requirements-availability")
async def requirements_availability(
    payload: RequirementsAvailabilityRequest,
    availability: AvailabilityService = Depends(availability_dependency)
):
    """
    Term availability for the selected standalone courses and groups.
    """
    return availability.requirements_availability(
        payload.collegeId, payload.standaloneCourseIds, payload.groupIds
    )


@app.post("/api/group-term-courses")
async def group_term_courses(
    payload: GroupTermCoursesRequest,
    availability: AvailabilityService = Depends(availability_dependency)
):
    """
    Courses of a group offered in a term.
    """
    try:
        return availability.group_term_courses(payload.groupId, payload.collegeId, payload.term)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/planner/quarters")
async def planner_quarters(payload: QuartersRequest):
    """
    Generate empty quarter cards for the remaining requirements.
    """
    quarters = QuarterManager.generate_quarters(
        payload.startQuarter, payload.year, payload.totalCourses, payload.skipSummer
    )
    return {"quarters": quarters}


@app.post("/api/planner/schedule")
async def planner_schedule(payload: ScheduleFromQuartersRequest):
    """
    Flatten filled quarters into the schedule sent to /api/verify-planner.
    """
    try:
        schedule = QuarterManager.build_schedule(payload.quarters)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "schedule": schedule,
        "canVerify": bool(payload.quarters) and not QuarterManager.has_unchosen_groups(payload.quarters)
    }


@app.post("/api/verify-planner", response_model=VerifyPlannerResponse)
async def verify_planner(
    payload: VerifyPlannerRequest,
    verifier: PlannerVerifier = Depends(verifier_dependency)
):
    """
    Verify a plan against prerequisite groups.

    Returns violations (blocking), advisories (non-blocking), a suggested
    order for outstanding requirements and graph statistics.
    """
    schedule = [
        ScheduleItem(
            course=CourseRef(course_id=item.course.course_id, code=item.course.code),
            term_index=item.termIndex,
            term_name=item.termName
        )
        for item in payload.schedule
    ]
    outstanding = [
        OutstandingRequirement(course_id=req.course_id, code=req.code, availability=req.availability)
        for req in payload.outstandingRequirements
    ]

    try:
        result = verifier.verify(schedule, outstanding)
    except InvalidPlanError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return result.to_dict()


@app.get("/api/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(catalog: CatalogService = Depends(catalog_dependency)):
    """
    Get Redis cache statistics.
    """
    return CacheStatsResponse(**catalog.get_cache_stats())


@app.post("/api/cache/clear")
async def clear_cache(catalog: CatalogService = Depends(catalog_dependency)):
    """
    Clear all cached catalog data.
    """
    success = catalog.clear_cache()
    return {"success": success, "message": "Cache cleared" if success else "Cache not available"}


# Main

def main():
    import uvicorn

    parser = argparse.ArgumentParser(description="Degree Pathway Planner API Server")
    parser.add_argument("--port", type=int, default=4000, help="Port to run on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    args = parser.parse_args()

    print(f"[Server] Starting on http://{args.host}:{args.port}")

    uvicorn.run(
        "server:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
