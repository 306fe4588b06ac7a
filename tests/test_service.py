from __future__ import annotations

from typing import Any, Dict, List

import pytest

from core import (
    CancellationTokenSource,
    CellKind,
    ErrorOutput,
    ExecutionState,
    Item,
    NotebookCell,
    NotebookDocument,
    RichOutput,
    SearchPage,
)
from orchestrator import NotebookExecutionService, ProjectRegistry
from outputs import MIME_HTML, MIME_MARKDOWN
from sources import BaseSearchClient, PaginatedFetcher
from storage import NotebookStore
from utils.exceptions import FetchError, NotebookNotOpenError


URI = "triage.github-issues"


def _item(item_id: int) -> Item:
    return Item(
        id=item_id,
        number=item_id,
        title=f"issue {item_id}",
        html_url=f"https://github.com/acme/app/issues/{item_id}",
        repository_url="https://api.github.com/repos/acme/app",
        created_at="2024-01-01T00:00:00Z",
        updated_at="2024-01-01T00:00:00Z",
        user={"login": "octocat"},
    )


class _RecordingClient(BaseSearchClient):
    def __init__(self, items: List[Item]):
        self.items = items
        self.queries: List[str] = []
        self.fail_with = None
        self.on_call = None
        self.closed = False

    async def search_issues(self, params: Dict[str, Any]) -> SearchPage:
        self.queries.append(params["q"])
        if self.on_call:
            self.on_call()
        if self.fail_with:
            raise self.fail_with
        return SearchPage(total_count=len(self.items), items=self.items)

    async def close(self):
        self.closed = True


def _service(client: BaseSearchClient) -> NotebookExecutionService:
    return NotebookExecutionService(
        client=client,
        fetcher=PaginatedFetcher(client, page_size=100, item_budget=1000),
        store=NotebookStore(),
        registry=ProjectRegistry(),
    )


def _document(*values: str) -> NotebookDocument:
    return NotebookDocument(
        uri=URI,
        cells=[NotebookCell(cell_id=f"cell_{idx}", value=value) for idx, value in enumerate(values)],
    )


@pytest.mark.asyncio
async def test_execute_cell_renders_both_views() -> None:
    client = _RecordingClient([_item(1), _item(2)])
    service = _service(client)
    service.open_notebook(URI, _document("is:open"))

    execution = await service.execute_cell(URI, "cell_0")

    assert execution.state == ExecutionState.DONE
    assert [event.state for event in execution.events] == [
        ExecutionState.RESOLVING,
        ExecutionState.FETCHING,
        ExecutionState.RENDERING,
        ExecutionState.DONE,
    ]
    assert execution.item_count == 2
    outputs = service.get_document(URI).cells[0].outputs
    assert len(outputs) == 1 and isinstance(outputs[0], RichOutput)
    assert set(outputs[0].data) == {MIME_HTML, MIME_MARKDOWN}
    assert service.last_execution(URI, "cell_0").state == ExecutionState.DONE


@pytest.mark.asyncio
async def test_fetch_error_replaces_outputs_with_error() -> None:
    client = _RecordingClient([_item(1)])
    service = _service(client)
    service.open_notebook(URI, _document("is:open"))
    await service.execute_cell(URI, "cell_0")

    client.fail_with = FetchError("API rate limit exceeded", source="github", status_code=403)
    execution = await service.execute_cell(URI, "cell_0")

    assert execution.state == ExecutionState.FAILED
    assert service.get_document(URI).cells[0].outputs == [
        ErrorOutput(ename="FetchError", evalue="API rate limit exceeded")
    ]


@pytest.mark.asyncio
async def test_cancelled_execution_keeps_previous_outputs() -> None:
    client = _RecordingClient([_item(1)])
    service = _service(client)
    service.open_notebook(URI, _document("is:open"))
    await service.execute_cell(URI, "cell_0")
    previous = list(service.get_document(URI).cells[0].outputs)

    source = CancellationTokenSource()
    client.on_call = source.cancel
    execution = await service.execute_cell(URI, "cell_0", source.token)

    assert execution.state == ExecutionState.CANCELLED
    assert service.get_document(URI).cells[0].outputs == previous


@pytest.mark.asyncio
async def test_resolution_failure_reports_error_without_fetching() -> None:
    client = _RecordingClient([_item(1)])
    service = _service(client)
    service.open_notebook(URI, _document("$missing is:open"))

    execution = await service.execute_cell(URI, "cell_0")

    assert execution.state == ExecutionState.FAILED
    assert client.queries == []
    output = service.get_document(URI).cells[0].outputs[0]
    assert isinstance(output, ErrorOutput)
    assert output.ename == "QueryResolutionError"


@pytest.mark.asyncio
async def test_execute_all_runs_in_order_past_failures() -> None:
    client = _RecordingClient([_item(1)])
    service = _service(client)
    document = _document("$repo=repo:acme/app", "$missing", "$repo is:open")
    document.cells.insert(1, NotebookCell(cell_id="notes", kind=CellKind.MARKDOWN, value="# notes"))
    service.open_notebook(URI, document)

    executions = await service.execute_all(URI)

    assert [execution.cell_id for execution in executions] == ["cell_0", "cell_1", "cell_2"]
    assert [execution.state for execution in executions] == [
        ExecutionState.DONE,
        ExecutionState.FAILED,
        ExecutionState.DONE,
    ]
    assert client.queries == ["repo:acme/app is:open"]


@pytest.mark.asyncio
async def test_single_cell_sees_definitions_from_opened_notebook() -> None:
    client = _RecordingClient([_item(1)])
    service = _service(client)
    service.open_notebook(URI, _document("$repo=repo:acme/app", "$repo is:open"))

    execution = await service.execute_cell(URI, "cell_1")

    assert execution.state == ExecutionState.DONE
    assert client.queries == ["repo:acme/app is:open"]


@pytest.mark.asyncio
async def test_executing_a_cell_makes_its_definitions_most_recent() -> None:
    client = _RecordingClient([_item(1)])
    service = _service(client)
    service.open_notebook(URI, _document("$repo=repo:acme/app", "$repo=repo:other/lib", "$repo is:open"))

    await service.execute_cell(URI, "cell_2")
    await service.execute_cell(URI, "cell_0")
    await service.execute_cell(URI, "cell_2")

    assert client.queries == ["repo:other/lib is:open", "repo:acme/app is:open"]


@pytest.mark.asyncio
async def test_execute_all_stops_once_cancelled() -> None:
    client = _RecordingClient([_item(1)])
    service = _service(client)
    service.open_notebook(URI, _document("is:open", "is:closed"))
    source = CancellationTokenSource()
    client.on_call = source.cancel

    executions = await service.execute_all(URI, source.token)

    assert [execution.state for execution in executions] == [ExecutionState.CANCELLED]
    assert client.queries == ["is:open"]


def test_resolve_returns_descriptors_per_cell() -> None:
    service = _service(_RecordingClient([]))
    service.open_notebook(URI, _document("$me=octocat", "assignee:$me sort:updated-asc", "$nope"))

    resolved = service.resolve(URI)

    assert resolved["cell_0"] == []
    assert [descriptor.q for descriptor in resolved["cell_1"]] == ["assignee:octocat"]
    assert "cell_2" not in resolved


@pytest.mark.asyncio
async def test_unknown_notebook_and_cell_raise() -> None:
    service = _service(_RecordingClient([]))

    with pytest.raises(NotebookNotOpenError):
        await service.execute_cell(URI, "cell_0")

    service.open_notebook(URI, _document("is:open"))
    with pytest.raises(NotebookNotOpenError):
        await service.execute_cell(URI, "cell_9")


@pytest.mark.asyncio
async def test_save_close_and_reopen(tmp_path) -> None:
    client = _RecordingClient([_item(1)])
    path = tmp_path / "triage.github-issues"
    async with _service(client) as service:
        service.open_notebook(str(path), NotebookDocument(uri=str(path), cells=[NotebookCell(cell_id="cell_0", value="is:open")]))
        await service.execute_cell(str(path), "cell_0")
        service.save(str(path))

        assert service.close_notebook(str(path)) is True
        assert service.close_notebook(str(path)) is False
        with pytest.raises(NotebookNotOpenError):
            service.get_document(str(path))

        reopened = service.open_notebook(str(path))

    assert client.closed is True
    assert reopened.cells[0].value == "is:open"
    assert isinstance(reopened.cells[0].outputs[0], RichOutput)
