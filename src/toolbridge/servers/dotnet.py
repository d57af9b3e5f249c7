"""ASP.NET Core tool server: dotnet CLI commands run inside a project.

Commands are run with a discrete argument vector; values supplied by the
model are passed as arguments and never reach a shell.
"""

import logging
import shlex
from pathlib import Path

from pydantic import BaseModel, Field

from toolbridge.errors import HandlerFailure
from toolbridge.tools.process import run_command
from toolbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SCAFFOLDING_HINT = (
    "Make sure you have installed the scaffolding tools:\n"
    "dotnet tool install -g dotnet-aspnet-codegenerator\n"
    "dotnet add package Microsoft.VisualStudio.Web.CodeGeneration.Design"
)


class RunDotnetArguments(BaseModel):
    command: str = Field(description="dotnet command (build, test, run, etc.)")
    args: str | None = Field(default=None, description="Additional arguments")


class AddPackageArguments(BaseModel):
    package: str = Field(description="NuGet package name")
    version: str | None = Field(default=None, description="Package version")


class ScaffoldCrudArguments(BaseModel):
    model: str = Field(description="Model class name")
    controller: str | None = Field(default=None, description="Controller name")
    db_context: str = Field(
        default="ApplicationDbContext",
        alias="dbContext",
        description="DbContext class name",
    )


def build_dotnet_registry(project_path: Path) -> ToolRegistry:
    """Register the dotnet tools for the project at project_path."""
    registry = ToolRegistry()
    logger.debug(f"dotnet tools bound to project: {project_path}")

    @registry.tool("run_dotnet", "Run .NET CLI commands", RunDotnetArguments)
    async def run_dotnet(args: RunDotnetArguments) -> str:
        extra = shlex.split(args.args) if args.args else []
        result = await run_command(["dotnet", args.command, *extra], cwd=project_path)
        return result.output

    @registry.tool("add_package", "Add a NuGet package to the project", AddPackageArguments)
    async def add_package(args: AddPackageArguments) -> str:
        argv = ["dotnet", "add", "package", args.package]
        if args.version:
            argv += ["--version", args.version]
        result = await run_command(argv, cwd=project_path)
        return f"Package '{args.package}' added successfully!\n{result.output}"

    @registry.tool(
        "scaffold_crud", "Scaffold CRUD operations for an entity", ScaffoldCrudArguments
    )
    async def scaffold_crud(args: ScaffoldCrudArguments) -> str:
        controller = args.controller or f"{args.model}Controller"
        argv = [
            "dotnet", "aspnet-codegenerator", "controller",
            "-name", controller,
            "-m", args.model,
            "-dc", args.db_context,
            "--relativeFolderPath", "Controllers",
            "--useDefaultLayout",
            "--referenceScriptLibraries",
        ]
        try:
            result = await run_command(argv, cwd=project_path)
        except HandlerFailure as e:
            raise HandlerFailure(f"{e}\n\n{SCAFFOLDING_HINT}") from e
        return f"CRUD operations scaffolded successfully for {args.model}!\n{result.output}"

    return registry
