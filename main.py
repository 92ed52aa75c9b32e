import html
import json
import os
import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console

from config import settings
from genre import Genre
from library import Library
from utils.ui_helpers import set_output_mode, print_genre_list, print_instance_list, print_stats_result
from utils.validators import genre_form

console = Console()

app = typer.Typer(help="Local Library catalog CLI")

_state: dict = {"db_file": None}


def _get_library() -> Library:
    return Library(db_file=_state["db_file"] or settings.data_file)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db_file: Optional[str] = typer.Option(
        None,
        "--db-file",
        help="SQLite catalog file (default: LIBRARY_DB_FILE or library.db)",
    ),
):
    """Global options (output mode, database file)."""
    if output:
        set_output_mode(output)
    _state["db_file"] = db_file


@app.command("init-db")
def cli_init_db():
    """Create the catalog tables if they don't exist."""
    lib = _get_library()
    print(f"Database ready: {lib.db_file}")


@app.command("genres")
def cli_genres():
    """List all genres, sorted by name."""
    print_genre_list(_get_library().list_genres())


@app.command("add-genre")
def cli_add_genre(name: str):
    """Add a genre, applying the same rules as the web form."""
    result = genre_form.validate({"name": name})
    if not result.is_valid:
        for error in result.errors:
            print(f"Invalid {error.field}: {error.message}")
        raise typer.Exit(code=1)

    lib = _get_library()
    existing = lib.find_genre_by_name(result.values["name"])
    if existing:
        print(f"Genre already exists: {html.unescape(existing.name)} ({existing.id})")
        return

    genre = lib.add_genre(Genre(name=result.values["name"]))
    print(f"Added genre: {html.unescape(genre.name)} ({genre.id})")


@app.command("instances")
def cli_instances():
    """List all book copies with their titles."""
    print_instance_list(_get_library().list_instances())


@app.command("stats")
def cli_stats():
    """Show catalog record counts."""
    print_stats_result(_get_library().get_statistics())


@app.command("import-json")
def cli_import_json(file_path: str):
    """Seed the catalog from a JSON fixture file."""
    try:
        counts = _get_library().import_json(file_path)
    except FileNotFoundError:
        print(f"File not found: {file_path}")
        raise typer.Exit(code=1)
    except (json.JSONDecodeError, KeyError, ValueError) as e:
        print(f"Invalid fixture {file_path}: {e}")
        raise typer.Exit(code=1)
    print("Imported " + ", ".join(f"{count} {kind}" for kind, count in counts.items()))


@app.command("serve")
def cli_serve(reload: bool = typer.Option(False, "--reload", help="Restart on code changes")):
    """Start the web UI with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    console.print(f"Starting web UI on http://{host}:{port}/catalog")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        env = dict(os.environ)
        if _state["db_file"]:
            env["LIBRARY_DB_FILE"] = _state["db_file"]
        subprocess.run(args, env=env)
    except KeyboardInterrupt:
        console.print("[green]Server stopped.[/]")


if __name__ == "__main__":
    app()
