"""Canonical data contracts for the query/execute/render pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SortKey(str, Enum):
    """Sort keys accepted by the issue search endpoint."""

    COMMENTS = "comments"
    CREATED = "created"
    UPDATED = "updated"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CellKind(IntEnum):
    """Cell kinds, numbered as in the persisted notebook format."""

    MARKDOWN = 1
    CODE = 2


class ExecutionState(str, Enum):
    """Lifecycle states of a single cell execution."""

    IDLE = "idle"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    RENDERING = "rendering"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class QueryDescriptor(BaseModel):
    """One parsed query: search string plus optional sort key and direction."""

    model_config = ConfigDict(frozen=True)

    q: str
    sort: Optional[SortKey] = None
    order: SortOrder = SortOrder.DESC

    @field_validator("q", mode="before")
    @classmethod
    def _strip_query(cls, value: Any) -> str:
        return str(value or "").strip()

    def to_params(self) -> Dict[str, str]:
        """Search parameters without paging."""
        params = {"q": self.q}
        if self.sort is not None:
            params["sort"] = self.sort.value
            params["order"] = self.order.value
        return params


class Label(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    color: str = "ededed"


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    login: str
    html_url: str = ""
    avatar_url: str = ""


class Item(BaseModel):
    """A single issue or pull request returned by the search endpoint."""

    model_config = ConfigDict(extra="ignore")

    id: int
    number: int
    title: str
    html_url: str
    repository_url: str
    created_at: str
    updated_at: str
    closed_at: Optional[str] = None
    comments: int = 0
    labels: List[Label] = Field(default_factory=list)
    user: User
    assignee: Optional[User] = None
    assignees: Optional[List[User]] = None

    @property
    def is_open(self) -> bool:
        return not self.closed_at


class SearchPage(BaseModel):
    """One page of the search response."""

    model_config = ConfigDict(extra="ignore")

    total_count: int = 0
    incomplete_results: bool = False
    items: List[Item] = Field(default_factory=list)


@dataclass
class FetchState:
    """Per-query pagination state, alive only for one fetch loop."""

    page: int = 1
    items_so_far: int = 0
    total_count: int = 0


class FetchResult(BaseModel):
    """Items gathered for one descriptor with the total the API reported."""

    descriptor: QueryDescriptor
    items: List[Item] = Field(default_factory=list)
    total_count: int = 0
    pages_fetched: int = 0
    cancelled: bool = False


def has_many_repos(items: List[Item]) -> bool:
    """True when the items come from more than one repository."""
    return len({item.repository_url for item in items}) > 1


class ExecutionResult(BaseModel):
    """Merged, deduplicated result of all descriptors of one cell."""

    items: List[Item] = Field(default_factory=list)
    total_count: int = 0
    elapsed_ms: int = 0

    @property
    def has_many_repos(self) -> bool:
        return has_many_repos(self.items)


class RichOutput(BaseModel):
    """Rendered cell output keyed by mime type."""

    output_kind: Literal["rich"] = "rich"
    data: Dict[str, str] = Field(default_factory=dict)


class ErrorOutput(BaseModel):
    output_kind: Literal["error"] = "error"
    ename: str
    evalue: str
    traceback: List[str] = Field(default_factory=list)


CellOutput = Union[RichOutput, ErrorOutput]


class NotebookCell(BaseModel):
    cell_id: str
    kind: CellKind = CellKind.CODE
    language: str = "github-issues"
    value: str = ""
    outputs: List[CellOutput] = Field(default_factory=list)

    @property
    def is_code(self) -> bool:
        return self.kind == CellKind.CODE


class NotebookDocument(BaseModel):
    uri: str
    cells: List[NotebookCell] = Field(default_factory=list)

    def get_cell(self, cell_id: str) -> Optional[NotebookCell]:
        for cell in self.cells:
            if cell.cell_id == cell_id:
                return cell
        return None

    def code_cells(self) -> List[NotebookCell]:
        return [cell for cell in self.cells if cell.is_code]


class ExecutionEvent(BaseModel):
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    state: ExecutionState
    message: str = ""


class CellExecution(BaseModel):
    """Observable record of one cell execution."""

    cell_id: str
    state: ExecutionState = ExecutionState.IDLE
    events: List[ExecutionEvent] = Field(default_factory=list)
    error: Optional[str] = None
    descriptor_count: int = 0
    item_count: int = 0
    total_count: int = 0
    elapsed_ms: int = 0

    def transition(self, state: ExecutionState, message: str = "") -> None:
        self.state = state
        self.events.append(ExecutionEvent(state=state, message=str(message or "").strip()))
