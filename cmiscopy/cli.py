"""CLI interface for cmiscopy."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import CmisClient
from .config import config
from .exceptions import CmisAPIError, CmisConfigError, CmisCopyError
from .output import OutputFormatter
from .sync.registry import VersionRegistry
from .task import CmisCopyTask, CopyReport, resolve_action

logger = logging.getLogger(__name__)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="cmiscopy")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """cmiscopy - Copy files and folders to and from a CMIS repository."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("cmiscopy").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--url", prompt="CMIS browser binding URL", help="Repository root URL")
@click.option("--username", "-u", prompt="Username", help="Repository user name")
@click.option(
    "--password",
    "-p",
    prompt="Password",
    hide_input=True,
    help="Repository password",
)
@click.option("--cmis-root", default=None, help="Default repository root path")
@click.option("--local-root", default=None, help="Default local root directory")
@click.pass_context
def init(
    ctx: Any,
    url: str,
    username: str,
    password: str,
    cmis_root: Optional[str],
    local_root: Optional[str],
) -> None:
    """Store repository connection settings.

    Settings are written to ~/.config/cmiscopy/config.
    """
    out: OutputFormatter = ctx.obj["out"]

    async def check() -> None:
        async with CmisClient(url, username, password) as client:
            await client.get_object_by_path("/")

    out.info("Validating connection...")
    try:
        asyncio.run(check())
    except CmisAPIError as e:
        out.error(f"Could not connect to repository: {e}")
        ctx.exit(1)

    path = config.save(
        url=url,
        username=username,
        password=password,
        cmis_root=cmis_root,
        local_root=local_root,
    )
    out.success(f"Configuration saved to {path}")


def _connection_settings(
    url: Optional[str], username: Optional[str], password: Optional[str]
) -> tuple[str, str, str]:
    """Merge command line credentials with the stored configuration.

    Raises:
        CmisConfigError: If no repository URL or user name is available
    """
    url = url or config.url
    username = username or config.username
    if not url or not username:
        raise CmisConfigError(
            "Repository not configured. Run 'cmiscopy init' or set CMIS_URL "
            "and CMIS_USERNAME."
        )
    password = password or config.password
    if not password:
        password = click.prompt("Password", hide_input=True)
    return url, username, password


async def _run_copy(
    url: str,
    username: str,
    password: str,
    registry: VersionRegistry,
    task_options: dict[str, Any],
    out: OutputFormatter,
) -> CopyReport:
    async with CmisClient(url, username, password) as client:
        task = CmisCopyTask(client, registry, output=out, **task_options)
        return await task.run()


@main.command()
@click.argument("specific_path", required=False, default=None)
@click.argument("action", required=False, default=None)
@click.option("--url", help="CMIS browser binding URL (default: CMIS_URL)")
@click.option("--cmis-root", "-r", help="Repository root path (default: CMIS_ROOT)")
@click.option(
    "--local-root", "-l", help="Local root directory (default: CMISCOPY_LOCAL_ROOT)"
)
@click.option("--username", "-u", help="Repository user (default: CMIS_USERNAME)")
@click.option("--password", "-p", help="Repository password (default: CMIS_PASSWORD)")
@click.option(
    "--registry",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Version registry file (default: ~/.config/cmiscopy/versions.json)",
)
@click.option(
    "--workers",
    "-j",
    type=int,
    default=1,
    help="Number of files transferred concurrently (default: 1)",
)
@click.pass_context
def copy(
    ctx: Any,
    specific_path: Optional[str],
    action: Optional[str],
    url: Optional[str],
    cmis_root: Optional[str],
    local_root: Optional[str],
    username: Optional[str],
    password: Optional[str],
    registry: Optional[Path],
    workers: int,
) -> None:
    """Copy files between the repository and the local directory.

    SPECIFIC_PATH limits the copy to a file or folder below the roots.
    ACTION is upload (u) or download (d, the default).

    Uploads are refused for files whose remote version changed since they
    were last synced; download them first.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        resolve_action(action)
    except ValueError as e:
        out.error(str(e))
        ctx.exit(1)

    try:
        url, username, password = _connection_settings(url, username, password)
    except CmisConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    cmis_root = cmis_root or config.cmis_root or "/"
    local_root = local_root or config.local_root or "."

    version_registry = VersionRegistry(registry or config.registry_path)
    task_options = {
        "cmis_root": cmis_root,
        "local_root": local_root,
        "specific_path": specific_path,
        "action": action,
        "workers": workers,
    }

    try:
        report = asyncio.run(
            _run_copy(url, username, password, version_registry, task_options, out)
        )
    except CmisCopyError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(
            [
                {
                    "path": str(r.path),
                    "status": r.status.value,
                    "version": r.version,
                    "message": r.message,
                }
                for r in report.results
            ]
        )

    if not report.success:
        ctx.exit(1)


if __name__ == "__main__":
    main()
