import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config import load_settings, set_setting
from ..domain.errors import UnpubError
from ..repository import UnpubRepository

app = typer.Typer()
console = Console()


def get_repository() -> UnpubRepository:
    return UnpubRepository.from_settings(load_settings())


def _credential(token: Optional[str]) -> Optional[str]:
    return f"Bearer {token}" if token else None


def _run(operation):
    """run an async operation against a fresh repository, reporting registry errors."""
    repository = get_repository()

    async def runner():
        try:
            return await operation(repository)
        finally:
            await repository.close()

    try:
        return asyncio.run(runner())
    except UnpubError as e:
        console.print(f"[red]Error[/red] ({e.code}): {e}")
        raise typer.Exit(code=2 if e.retriable else 1)


@app.callback()
def main_callback(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")):
    """private package registry with upstream fallback."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)]
        )


@app.command()
def versions(package_name: str):
    """list the versions of a package (local, or upstream if none are local)."""
    async def collect(repository: UnpubRepository):
        return [item async for item in repository.versions(package_name)]

    items = _run(collect)
    if not items:
        console.print(f"[yellow]No versions of '{package_name}' found.[/yellow]")
        return

    table = Table(title=f"📦 {package_name}")
    table.add_column("Version", style="cyan")
    for item in items:
        table.add_row(item.version)
    console.print(table)


@app.command()
def info(package_name: str, version: str):
    """show the manifest of one package version."""
    item = _run(lambda repository: repository.get_version(package_name, version))
    console.print(Panel(item.manifest_text, title=f"{item.package_name} {item.version}", border_style="cyan"))


@app.command("download-url")
def download_url(package_name: str, version: str):
    """print where the archive of a package version can be fetched."""
    url = _run(lambda repository: repository.download_url(package_name, version))
    console.print(url, soft_wrap=True)


@app.command()
def publish(
    archive: Path = typer.Argument(..., exists=True, dir_okay=False, help="Path to a .tar.gz package archive"),
    token: str = typer.Option(None, "--token", envvar="UNPUB_TOKEN", help="OAuth2 access token")
):
    """publish a package archive."""
    data = archive.read_bytes()
    item = _run(lambda repository: repository.upload(data, _credential(token)))
    console.print(f"[green]✓[/green] Published [cyan]{item.package_name}[/cyan] {item.version}")


@app.command()
def uploaders(package_name: str):
    """list the uploaders of a package."""
    emails = _run(lambda repository: repository.uploaders(package_name))
    if not emails:
        console.print(f"[yellow]'{package_name}' has no uploaders.[/yellow]")
        return
    for email in emails:
        console.print(f"- {email}")


@app.command("add-uploader")
def add_uploader(
    package_name: str,
    email: str,
    token: str = typer.Option(None, "--token", envvar="UNPUB_TOKEN", help="OAuth2 access token")
):
    """add a co-publisher to a package."""
    _run(lambda repository: repository.add_uploader(package_name, email, _credential(token)))
    console.print(f"[green]✓[/green] Added {email} to {package_name}")


@app.command("remove-uploader")
def remove_uploader(
    package_name: str,
    email: str,
    token: str = typer.Option(None, "--token", envvar="UNPUB_TOKEN", help="OAuth2 access token")
):
    """remove a co-publisher from a package."""
    _run(lambda repository: repository.remove_uploader(package_name, email, _credential(token)))
    console.print(f"[green]✓[/green] Removed {email} from {package_name}")


@app.command()
def config(key: str, value: str):
    """set a value in ~/.unpub/config (e.g. proxy_url https://pub.dev)."""
    try:
        set_setting(key, value)
    except (ValueError, RuntimeError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {key} = {value}")


if __name__ == "__main__":
    app()
