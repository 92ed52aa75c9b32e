import html
import os
import json
from typing import List, Any, Dict
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def _text(value: Any) -> str:
    # Genre names and imprints are stored HTML-escaped
    return html.unescape(str(value or ""))

def print_genre_list(genres: List[Any]) -> None:
    """Print genres in the current output mode.
    - plain: 'id - name' lines, or 'No genres in catalog.'
    - json: array of {id, name}
    - rich: Rich table
    """
    mode = get_output_mode()

    if not genres:
        print("No genres in catalog.")
        return

    if mode == "json":
        print(json.dumps([{"id": g.id, "name": _text(g.name)} for g in genres], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Genres", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name", style="white")
        for g in genres:
            table.add_row(g.id, escape(_text(g.name)))
        _console.print(table)
    else:
        for g in genres:
            print(f"{g.id} - {_text(g.name)}")

def print_instance_list(instances: List[Any]) -> None:
    """Print book instances in the current output mode."""
    mode = get_output_mode()

    if not instances:
        print("No book copies in catalog.")
        return

    rows = [
        {
            "id": i.id,
            "title": i.book.title if i.book else "",
            "imprint": _text(i.imprint),
            "status": i.status,
            "due_back": i.due_back_yyyy_mm_dd,
        }
        for i in instances
    ]

    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Book Instances", show_lines=True, header_style="bold cyan")
        for column in ("ID", "Title", "Imprint", "Status", "Due back"):
            table.add_column(column)
        for r in rows:
            table.add_row(r["id"], escape(r["title"]), escape(r["imprint"]), r["status"], r["due_back"])
        _console.print(table)
    else:
        for r in rows:
            due = f" (due {r['due_back']})" if r["due_back"] else ""
            print(f"{r['id']} - {r['title']} : {r['imprint']} [{r['status']}]{due}")

def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{key.replace('_', ' ').title()}:[/] {value}" for key, value in stats.items())
        _console.print(Panel.fit(content, title="Catalog", border_style="blue"))
    else:
        for key, value in stats.items():
            print(f"{key.replace('_', ' ').title()}: {value}")
