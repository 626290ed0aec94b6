from pathlib import Path
from typing import Optional

import httpx
import typer

from datalab_cli.utils import console, error_detail, get_client


def export_dataset(
    export_type: str = typer.Option("pairs", "--type", "-t", help="pairs, conversations, items or items_with_meta"),
    dataset_id: int = typer.Option(0, "--dataset-id", "-d", help="Dataset to export (0 = all conversation datasets)"),
    split: str = typer.Option("train", "--split", help="train, valid, test or all"),
    status: str = typer.Option("approved", "--status", help="Conversation status to export"),
    include_system: bool = typer.Option(False, "--include-system", help="Render system turns into prompts"),
    context: str = typer.Option("none", "--context", help="Prompt context: none, window or full"),
    context_turns: int = typer.Option(6, "--context-turns", help="User turns kept by --context window"),
    role_style: str = typer.Option("labels", "--role-style", help="labels or plain"),
    max_examples: int = typer.Option(0, "--max-examples", "-n", help="Stop after N records (0 = unlimited)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
) -> None:
    """Stream a JSONL export to a file or stdout."""
    params = {
        "type": export_type,
        "dataset_id": dataset_id,
        "split": split,
        "status": status,
        "include_system": include_system,
        "context": context,
        "context_turns": context_turns,
        "role_style": role_style,
        "max_examples": max_examples,
    }

    client = get_client()
    records = 0
    with client.stream("GET", "/v1/export.jsonl", params=params) as response:
        if response.status_code != 200:
            response.read()
            console.print(f"[red]error: {error_detail(response)}[/red]")
            raise typer.Exit(1)

        sink = output.open("wb") if output else typer.get_binary_stream("stdout")
        try:
            for chunk in response.iter_bytes():
                sink.write(chunk)
                sink.flush()
                records += chunk.count(b"\n")
        except httpx.HTTPError as e:
            console.print(f"[red]export ended early after {records} records: {e}[/red]")
            raise typer.Exit(1)
        finally:
            if output:
                sink.close()

    target = str(output) if output else "stdout"
    console.print(f"[green]Exported {records} records to {target}[/green]")
