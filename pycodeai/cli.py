"""CLI interface for the CodeAI analysis service."""

import json as jsonlib
import logging
import os
from pathlib import Path
from typing import Any, Optional

import click

from .api import CodeAIClient
from .auth import logout as remove_stored_api_key
from .auth import require_api_key, web_login
from .config import (
    config,
    guard_against_existing_project,
    load_project_config,
    project_config_exists,
)
from .exceptions import CodeAIError, OperationCancelledError
from .git_utils import is_git_repository
from .output import OutputFormatter
from .sync import SyncEngine
from .sync.scope import ScopeRequest, confirm_file_limit, determine_scope
from .utils import CONFIG_FILE_NAME, normalize_path

logger = logging.getLogger(__name__)


def get_project_name(name: Optional[str], project_root: Path) -> str:
    """Determine the name for a new project.

    The ``--name`` option wins, then the ``name`` field of package.json,
    then the name of the project directory.
    """
    if name and name.strip():
        return name.strip()

    package_json = project_root / "package.json"
    if package_json.is_file():
        try:
            with open(package_json, encoding="utf-8") as f:
                package_name = jsonlib.load(f).get("name")
            if package_name:
                return str(package_name)
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f'Could not read "name" from package.json: {e}')

    return project_root.resolve().name


def _relative_target_directory(target_directory: str, project_root: Path) -> str:
    """Express the target directory relative to the project root."""
    absolute = os.path.abspath(os.path.join(project_root, target_directory))
    relative = normalize_path(os.path.relpath(absolute, project_root))
    if relative == ".." or relative.startswith("../"):
        raise click.BadParameter(
            f'"{target_directory}" is outside the current directory.',
            param_hint="TARGET_DIRECTORY",
        )
    return relative


def _print_git_required(out: OutputFormatter, changed: bool) -> None:
    if changed:
        out.error("Cannot analyze changed files")
        out.warning(
            "The --changed option requires a git repository, "
            "but this directory is not one."
        )
    else:
        out.error("Not a git repository")
        out.warning(
            "Without arguments, 'codeai run' analyzes the files changed in git, "
            "but this directory is not a git repository."
        )
    out.warning("Your options:")
    out.warning("  1. Initialize a git repository:")
    out.warning('     git init && git add . && git commit -m "Initial commit"')
    out.warning("  2. Analyze the entire project instead: codeai run --all")
    out.warning("  3. Analyze specific files or folders: codeai run src/")


@click.group()
@click.option(
    "--api-key", "-k", envvar="CODEAI_API_KEY", help="CodeAI API key"
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pycodeai")
@click.pass_context
def main(
    ctx: Any,
    api_key: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """CodeAI - Sync your project and run AI code analysis."""
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pycodeai").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--no-browser",
    is_flag=True,
    help="Print the login URL without opening a browser",
)
@click.pass_context
def login(ctx: Any, no_browser: bool) -> None:
    """Log in through the browser and store your API key.

    The key is saved in ~/.config/pycodeai/config for future use.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        with CodeAIClient(require_api_key=False) as client:
            web_login(client, out, open_browser=not no_browser)
    except CodeAIError as e:
        out.error(f"Login failed: {e}")
        ctx.exit(1)

    if out.json_output:
        out.output_json(
            {"logged_in": True, "config_file": str(config.get_config_path())}
        )
        return
    out.success("Successfully logged in!")


@main.command()
@click.pass_context
def logout(ctx: Any) -> None:
    """Remove the stored API key."""
    out: OutputFormatter = ctx.obj["out"]

    removed = remove_stored_api_key()
    if out.json_output:
        out.output_json({"logged_out": removed})
    elif removed:
        out.success("Successfully logged out.")
    else:
        out.info("No stored API key found.")


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Show login state and the project linked to this directory."""
    out: OutputFormatter = ctx.obj["out"]
    project_root = Path.cwd()

    logged_in = bool(ctx.obj.get("api_key") or config.api_key)
    data: dict[str, Any] = {
        "logged_in": logged_in,
        "api_url": config.api_url,
        "project": None,
    }

    if project_config_exists(project_root):
        try:
            data["project"] = load_project_config(project_root).to_dict()
        except CodeAIError as e:
            out.error(str(e))
            ctx.exit(1)

    if out.json_output:
        out.output_json(data)
        return

    rows = [
        ("Logged in", "yes" if logged_in else "no (run 'codeai login')"),
        ("API URL", data["api_url"]),
    ]
    project = data["project"]
    if project:
        rows.append(("Project ID", project["projectId"]))
        rows.append(("Target directory", project["targetDirectory"]))
        if "maxUploadSizeMB" in project:
            rows.append(("Upload limit", f"{project['maxUploadSizeMB']}MB"))
    else:
        rows.append(("Project", f"not initialized (no {CONFIG_FILE_NAME})"))
    out.print_summary("CodeAI Status", rows)


@main.command()
@click.argument(
    "target_directory",
    default=".",
    type=click.Path(exists=True, file_okay=False),
)
@click.option("--name", "-n", help="Name of the new project")
@click.option(
    "--max-upload-size",
    type=float,
    default=None,
    help="Upload size limit in MB recorded for this project (default: 10)",
)
@click.option(
    "--workers",
    "-j",
    type=int,
    default=1,
    help="Number of threads used for hashing files (default: 1)",
)
@click.option(
    "--open-browser",
    is_flag=True,
    help="Open the project page after it is created",
)
@click.pass_context
def create(
    ctx: Any,
    target_directory: str,
    name: Optional[str],
    max_upload_size: Optional[float],
    workers: int,
    open_browser: bool,
) -> None:
    """Create a new remote project from this directory.

    TARGET_DIRECTORY: Directory to upload and analyze (default: current
    directory)
    """
    out: OutputFormatter = ctx.obj["out"]
    project_root = Path.cwd()

    try:
        guard_against_existing_project(project_root)
    except CodeAIError as e:
        out.error(str(e))
        ctx.exit(1)

    api_key = require_api_key(ctx, out)
    target = _relative_target_directory(target_directory, project_root)
    project_name = get_project_name(name, project_root)

    out.info(f'Creating project "{project_name}" from "{target}"...')

    try:
        with CodeAIClient(api_key=api_key) as client:
            engine = SyncEngine(
                client, output=out, project_root=project_root, max_workers=workers
            )
            result = engine.create_project(
                project_name, target, max_upload_size_mb=max_upload_size
            )
    except CodeAIError as e:
        out.error(f"Project creation failed: {e}")
        ctx.exit(1)

    if out.json_output:
        out.output_json(
            {
                "project_id": result.project_config.project_id,
                "project_url": result.project_url,
                "target_directory": target,
                "files": result.file_count,
                "archive_size": result.archive_size,
            }
        )
        return

    out.print_summary(
        "Project Created",
        [
            ("Project ID", result.project_config.project_id),
            ("Target directory", target),
            ("Files uploaded", str(result.file_count)),
            ("Archive size", out.format_size(result.archive_size)),
            ("Config file", str(result.config_path)),
        ],
    )
    if result.project_url:
        out.info(f"View your project at: {result.project_url}")
        if open_browser:
            click.launch(result.project_url)
    out.print("You can now run an analysis with: codeai run")


@main.command()
@click.option(
    "--dry-run", is_flag=True, help="Show what would be uploaded without uploading"
)
@click.option(
    "--workers",
    "-j",
    type=int,
    default=1,
    help="Number of threads used for hashing files (default: 1)",
)
@click.pass_context
def deploy(ctx: Any, dry_run: bool, workers: int) -> None:
    """Upload new and modified files to the linked project."""
    out: OutputFormatter = ctx.obj["out"]
    project_root = Path.cwd()

    try:
        project_config = load_project_config(project_root)
    except CodeAIError as e:
        out.error(str(e))
        ctx.exit(1)

    api_key = require_api_key(ctx, out)
    out.info(f"Started deployment to project: {project_config.project_id}")

    try:
        with CodeAIClient(api_key=api_key) as client:
            engine = SyncEngine(
                client, output=out, project_root=project_root, max_workers=workers
            )
            result = engine.deploy(
                project_config.project_id,
                project_config.target_directory,
                dry_run=dry_run,
            )
    except CodeAIError as e:
        out.error(f"Deployment failed: {e}")
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
        return

    if result.uploaded:
        out.print("You can now run an analysis on the updated project:")
        out.info("  codeai run")


@main.command()
@click.argument("paths", nargs=-1)
@click.option(
    "--task",
    "-t",
    default="REVIEW",
    show_default=True,
    help="Analysis task (e.g. REVIEW, UNIT_TESTS)",
)
@click.option(
    "--language",
    "-l",
    default="en",
    show_default=True,
    help="Language for the analysis results (e.g. en, es, fr, pt)",
)
@click.option(
    "--changed", is_flag=True, help="Analyze only files changed in git"
)
@click.option(
    "--all",
    "analyze_all",
    is_flag=True,
    help="Analyze every file in the project's target directory",
)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Do not ask for confirmation when many files are selected",
)
@click.option(
    "--workers",
    "-j",
    type=int,
    default=1,
    help="Number of threads used for hashing files (default: 1)",
)
@click.option(
    "--open-browser",
    is_flag=True,
    help="Open the results page in the browser",
)
@click.pass_context
def run(
    ctx: Any,
    paths: tuple[str, ...],
    task: str,
    language: str,
    changed: bool,
    analyze_all: bool,
    yes: bool,
    workers: int,
    open_browser: bool,
) -> None:
    """Sync local changes and start an analysis.

    Without arguments the files changed in git are analyzed.

    PATHS: Files or folders to analyze
    """
    out: OutputFormatter = ctx.obj["out"]
    project_root = Path.cwd()

    default_behavior = not paths and not analyze_all and not changed
    if (default_behavior or changed) and not is_git_repository(project_root):
        _print_git_required(out, changed)
        ctx.exit(1)

    if analyze_all:
        request = ScopeRequest()
    elif paths and not changed:
        request = ScopeRequest(paths=tuple(paths))
    else:
        request = ScopeRequest(changed=True)

    try:
        project_config = load_project_config(project_root)
    except CodeAIError as e:
        out.error(str(e))
        ctx.exit(1)

    api_key = require_api_key(ctx, out)
    out.info(f"Starting analysis for project {project_config.project_id}...")

    try:
        scope_result = determine_scope(
            request,
            project_config,
            project_root,
            confirm=None if yes else confirm_file_limit,
        )
        if scope_result.is_empty:
            out.warning("No files to analyze in the specified scope.")
            return

        with CodeAIClient(api_key=api_key) as client:
            engine = SyncEngine(
                client, output=out, project_root=project_root, max_workers=workers
            )
            engine.sync_if_needed(
                project_config.project_id, project_config.target_directory
            )

            out.info(f"Running analysis with scope: {request.kind.value}")
            out.print_file_list("Target files:", scope_result.target_file_paths)
            out.info(f"Task: {task.upper()}")
            out.info(f"Language: {language.lower()}")

            response = client.trigger_analysis(
                project_config.project_id,
                task,
                language,
                scope_result.scope.value,
                scope_result.target_file_paths,
            )
    except OperationCancelledError as e:
        out.warning(str(e))
        return
    except CodeAIError as e:
        out.error(f"Analysis failed: {e}")
        ctx.exit(1)

    results_url = response.get("resultsUrl")
    if out.json_output:
        out.output_json(
            {
                "project_id": project_config.project_id,
                "analysis_run_id": response.get("analysisRunId"),
                "results_url": results_url,
                "scope": scope_result.scope.value,
                "files": scope_result.target_file_paths,
            }
        )
        return

    out.success("Analysis successfully initiated!")
    if results_url:
        out.print("View analysis progress and results at:")
        out.info(results_url)
        if open_browser:
            click.launch(results_url)


if __name__ == "__main__":
    main()
