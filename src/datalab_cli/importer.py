import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from datalab_cli.utils import console, error_detail, get_client
from datalab_server.schemas.importer import ImportConversation


def parse_tags(value: str) -> list[str]:
    tags: list[str] = []
    seen: set[str] = set()
    for part in value.split(","):
        tag = part.strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        tags.append(tag)
    return tags


def apply_defaults(record: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    """Fill blank conversation fields from the command line defaults."""
    merged = dict(record)
    for key, value in defaults.items():
        current = merged.get(key)
        if current is None or (isinstance(current, str) and not current.strip()) or current == []:
            merged[key] = value
    return merged


def import_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSONL file to import"),
    dataset: str = typer.Option("", "--dataset", help="Dataset name (default: source)"),
    into: str = typer.Option("items", "--into", help="items or conversations"),
    split: str = typer.Option("train", "--split", help="Default split if missing"),
    status: str = typer.Option("approved", "--status", help="Default status if missing"),
    source: str = typer.Option("", "--source", help="Default source if missing"),
    notes: str = typer.Option("", "--notes", help="Default notes if missing"),
    tags: str = typer.Option("", "--tags", help="Comma-separated tags applied when missing"),
    replace: bool = typer.Option(False, "--replace", help="Delete existing rows in the dataset first"),
    max_records: int = typer.Option(0, "--max", help="Max rows to import (0 = unlimited)"),
    batch: int = typer.Option(200, "--batch", min=1, help="Records per request"),
    skip_bad: bool = typer.Option(True, "--skip-bad/--no-skip-bad", help="Skip invalid lines instead of failing"),
    bad_out: Optional[Path] = typer.Option(None, "--bad-out", help="Write invalid lines to this file"),
) -> None:
    """Import a JSONL file as dataset items or conversations."""
    mode = into.strip().lower() or "items"
    if mode not in ("items", "conversations"):
        console.print(f"[red]error: --into must be items or conversations, got {into!r}[/red]")
        raise typer.Exit(1)

    source = source.strip() or f"import:{path.name}"
    dataset = dataset.strip() or source
    defaults = {"split": split, "status": status, "source": source, "notes": notes, "tags": parse_tags(tags)}

    records: list[dict[str, Any]] = []
    bad_lines: list[str] = []
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            raw = line.strip()
            if not raw:
                continue
            if max_records and len(records) >= max_records:
                break

            try:
                value = json.loads(raw)
                if mode == "conversations":
                    if not isinstance(value, dict):
                        raise ValueError("record is not an object")
                    record = apply_defaults(value, defaults)
                    ImportConversation.model_validate(record)
                    records.append(record)
                else:
                    records.append({"data": value, "source_ref": f"{path.name}:{line_no}"})
            except (ValueError, ValidationError) as e:
                if not skip_bad:
                    console.print(f"[red]line {line_no}: invalid record: {e}[/red]")
                    raise typer.Exit(1)
                bad_lines.append(raw)

    if bad_out and bad_lines:
        bad_out.write_text("".join(f"{raw}\n" for raw in bad_lines), encoding="utf-8")

    client = get_client()
    imported = 0
    for start in range(0, len(records), batch):
        chunk = records[start : start + batch]
        payload = {"dataset": dataset, "replace": replace and start == 0, mode: chunk}
        response = client.post(f"/v1/import/{mode}", json=payload)
        if response.status_code != 200:
            console.print(f"[red]error: {error_detail(response)}[/red]")
            raise typer.Exit(1)
        imported += response.json()["imported"]
        console.print(f"imported={imported} bad={len(bad_lines)}")

    console.print(f"[green]Imported {imported} {mode} into {dataset!r} ({len(bad_lines)} bad lines)[/green]")
