"""Rails tool server: generators and commands run inside a Rails project.

Every command is executed with a discrete argument vector through
run_command; user-supplied values are never interpolated into a shell string.
"""

import logging
import shlex
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from toolbridge.tools.process import run_command
from toolbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

AttributeType = Literal[
    "string", "text", "integer", "float", "decimal", "datetime", "boolean", "references"
]


class ModelAttribute(BaseModel):
    name: str
    type: AttributeType


class ScaffoldAttribute(BaseModel):
    name: str
    type: str


class GenerateModelArguments(BaseModel):
    name: str = Field(description="Model name")
    attributes: list[ModelAttribute] | None = Field(
        default=None, description="Model attributes"
    )


class RunRailsArguments(BaseModel):
    command: str = Field(description="Rails command to run")
    args: str | None = Field(default=None, description="Additional arguments")


class GenerateControllerArguments(BaseModel):
    name: str = Field(description="Controller name")
    actions: list[str] | None = Field(default=None, description="Controller actions")


class ScaffoldArguments(BaseModel):
    resource: str = Field(description="Resource name")
    attributes: list[ScaffoldAttribute] | None = Field(
        default=None, description="Resource attributes"
    )


def _attribute_args(attributes: list[ModelAttribute] | list[ScaffoldAttribute] | None) -> list[str]:
    return [f"{attr.name}:{attr.type}" for attr in attributes or []]


def build_rails_registry(project_path: Path) -> ToolRegistry:
    """Register the Rails tools for the project at project_path."""
    registry = ToolRegistry()
    logger.debug(f"Rails tools bound to project: {project_path}")

    @registry.tool(
        "generate_model", "Generate a Rails model with migrations", GenerateModelArguments
    )
    async def generate_model(args: GenerateModelArguments) -> str:
        result = await run_command(
            ["rails", "generate", "model", args.name, *_attribute_args(args.attributes)],
            cwd=project_path,
        )
        return result.output

    @registry.tool("run_rails", "Run Rails commands", RunRailsArguments)
    async def run_rails(args: RunRailsArguments) -> str:
        extra = shlex.split(args.args) if args.args else []
        result = await run_command(["rails", args.command, *extra], cwd=project_path)
        return result.output

    @registry.tool(
        "generate_controller", "Generate a Rails controller", GenerateControllerArguments
    )
    async def generate_controller(args: GenerateControllerArguments) -> str:
        result = await run_command(
            ["rails", "generate", "controller", args.name, *(args.actions or [])],
            cwd=project_path,
        )
        return f"Controller '{args.name}' generated successfully!\n{result.output}"

    @registry.tool("scaffold", "Generate a complete Rails scaffold", ScaffoldArguments)
    async def scaffold(args: ScaffoldArguments) -> str:
        result = await run_command(
            ["rails", "generate", "scaffold", args.resource, *_attribute_args(args.attributes)],
            cwd=project_path,
        )
        await run_command(["rails", "db:migrate"], cwd=project_path)
        return (
            f"Scaffold for '{args.resource}' generated and migrated successfully!\n"
            f"{result.output}"
        )

    return registry
