"""Version route."""

from fastapi import APIRouter

from SimAction.schemas import VersionResponse
from SimAction.version import APP_VERSION

router = APIRouter()


@router.get("/api/version", response_model=VersionResponse)
def get_version() -> VersionResponse:
    return VersionResponse(version=APP_VERSION)
