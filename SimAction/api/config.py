"""Configuration routes."""

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from SimAction.schemas import ConfigResponse, ConfigSaveRequest

router = APIRouter()


@router.get("/api/config", response_model=ConfigResponse)
def get_config_endpoint() -> ConfigResponse:
    """Effective configuration with the layer each value came from."""
    from SimAction.config_manager import ConfigModel, config_manager

    # Pick up external edits to the config file
    config_manager.load_file_config()

    effective_config = config_manager.get_effective_config()

    return ConfigResponse(
        **effective_config.model_dump(mode="json"),
        source=config_manager.get_config_source().value,
        field_sources={
            name: config_manager.get_field_source(name).value
            for name in ConfigModel.model_fields
        },
        config_path=str(config_manager.get_config_path()),
    )


@router.post("/api/config")
def save_config_endpoint(request: ConfigSaveRequest) -> dict:
    """Save values to the config file. Running managers pick them up on restart."""
    from SimAction.config_manager import ConfigModel, config_manager

    values = request.model_dump(mode="json", exclude_none=True)

    try:
        ConfigModel(**{**config_manager.to_dict(), **values})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid configuration: {e}")

    if not config_manager.save_file_config(merge_mode=True, **values):
        raise HTTPException(status_code=500, detail="Failed to save config")

    config_manager.sync_to_env()

    return {
        "success": True,
        "message": f"Configuration saved to {config_manager.get_config_path()}",
    }
