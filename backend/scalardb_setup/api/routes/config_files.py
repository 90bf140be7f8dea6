"""Configuration file endpoints: validate, render and save."""

import asyncio
from typing import Any

from fastapi import APIRouter, Body

from scalardb_setup.config import settings
from scalardb_setup.models.requests import ConfigGenerateRequest, ConfigSaveAllRequest, ConfigSaveRequest
from scalardb_setup.services import config_generator

router = APIRouter()


@router.post("/validate")
async def validate(config: dict[str, Any] = Body(default_factory=dict)) -> dict:
    return {"success": True, "result": config_generator.validate_configuration(config)}


@router.post("/generate")
async def generate(body: ConfigGenerateRequest) -> dict:
    return {"success": True, "content": config_generator.render(body.config, body.type)}


@router.post("/save")
async def save(body: ConfigSaveRequest) -> dict:
    result = await asyncio.to_thread(
        config_generator.save_configuration, body.config, body.type, body.output_path,
    )
    return {"success": True, "result": result}


@router.post("/save-all")
async def save_all(body: ConfigSaveAllRequest) -> dict:
    result = await asyncio.to_thread(
        config_generator.save_all, body.install_config, body.output_dir or settings.config_output_dir,
    )
    return {"success": True, "results": result["files"], "outputDir": result["output_dir"]}
