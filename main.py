"""CLI entrypoint: run issue-query notebooks from the terminal."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
from typing import List, Optional

from rich.markdown import Markdown

from core import CancellationTokenSource, CellExecution, ErrorOutput, ExecutionState, RichOutput
from orchestrator import NotebookExecutionService
from outputs import MIME_MARKDOWN
from utils.exceptions import ConfigurationError
from utils.logger import console, setup_logger


def _install_cancel_handler(source: CancellationTokenSource) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, source.cancel)
    except (NotImplementedError, RuntimeError):
        pass


def _print_execution(service: NotebookExecutionService, uri: str, execution: CellExecution) -> None:
    cell = service.get_document(uri).get_cell(execution.cell_id)
    console.rule(f"{execution.cell_id} [{execution.state.value}]")
    if execution.state == ExecutionState.CANCELLED:
        console.print("cancelled, previous output kept")
        return
    for output in list(cell.outputs if cell else []):
        if isinstance(output, ErrorOutput):
            console.print(f"[red]{output.ename}[/red]: {output.evalue}")
        elif isinstance(output, RichOutput):
            console.print(Markdown(output.data.get(MIME_MARKDOWN, "") or "_no results_"))
    if execution.state == ExecutionState.DONE:
        console.print(
            f"{execution.total_count} results, showing {execution.item_count}, took {execution.elapsed_ms}ms"
        )


async def _run(path: str, cell_id: Optional[str], save: bool) -> int:
    source = CancellationTokenSource()
    _install_cancel_handler(source)

    async with NotebookExecutionService() as service:
        service.open_notebook(path)
        if cell_id:
            executions: List[CellExecution] = [await service.execute_cell(path, cell_id, source.token)]
        else:
            executions = await service.execute_all(path, source.token)

        for execution in executions:
            _print_execution(service, path, execution)
        if save:
            service.save(path)

    return 1 if any(item.state == ExecutionState.FAILED for item in executions) else 0


def _resolve(path: str) -> int:
    service = NotebookExecutionService()
    service.open_notebook(path)
    resolved = service.resolve(path)
    payload = {
        cell_id: [descriptor.model_dump(mode="json") for descriptor in descriptors]
        for cell_id, descriptors in resolved.items()
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    service.close_notebook(path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="GitHub issue query notebook CLI")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="execute cells and attach their outputs")
    run.add_argument("path")
    run.add_argument("--cell", default="", help="cell id, e.g. cell_0 (default: all cells)")
    run.add_argument("--no-save", action="store_true")

    resolve = sub.add_parser("resolve", help="print the queries of every cell")
    resolve.add_argument("path")

    args = parser.parse_args(argv)
    setup_logger("", level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        if args.command == "run":
            return asyncio.run(_run(args.path, args.cell or None, save=not args.no_save))
        if args.command == "resolve":
            return _resolve(args.path)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        return 2
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
