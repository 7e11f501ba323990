from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

_FULL_FILE_END = 1_000_000


class DomainModel(BaseModel):
    """Base for domain-shaped parameters.

    Every field carries a default and unknown fields are kept, so a partial
    wire payload always produces a usable value.
    """

    model_config = ConfigDict(extra="allow")


class PositionDTO(DomainModel):
    line: int = 0
    character: int = 0


class RangeDTO(DomainModel):
    start: PositionDTO = Field(default_factory=PositionDTO)
    end: PositionDTO = Field(default_factory=PositionDTO)


class RowColRange(BaseModel):
    """1-based inclusive row/column range used by range computations."""

    model_config = ConfigDict(frozen=True)

    row: int = 1
    col: int = 1
    end_row: int = 1
    end_col: int = 1

    @classmethod
    def from_wire(cls, value: RangeDTO) -> RowColRange:
        return cls(
            row=value.start.line + 1,
            col=value.start.character + 1,
            end_row=value.end.line + 1,
            end_col=value.end.character + 1,
        )

    @classmethod
    def full_file(cls) -> RowColRange:
        return cls(row=1, col=1, end_row=_FULL_FILE_END, end_col=_FULL_FILE_END)

    def to_wire(self) -> Dict[str, Dict[str, int]]:
        return {
            "start": {"line": self.row - 1, "character": self.col - 1},
            "end": {"line": self.end_row - 1, "character": self.end_col - 1},
        }


class TextDocumentDTO(DomainModel):
    uri: str = ""
    version: Optional[int] = None
    language_id: Optional[str] = None
    text: Optional[str] = None


class TextDocumentParams(DomainModel):
    text_document: TextDocumentDTO = Field(default_factory=TextDocumentDTO)


class DidChangeTextDocumentParams(TextDocumentParams):
    content_changes: List[Dict[str, Any]] = []


class DidSaveTextDocumentParams(TextDocumentParams):
    text: Optional[str] = None


class TextDocumentPositionParams(TextDocumentParams):
    position: PositionDTO = Field(default_factory=PositionDTO)


class CompletionParams(TextDocumentPositionParams):
    context: Dict[str, Any] = {}


class ReferenceContextDTO(DomainModel):
    include_declaration: bool = False


class ReferenceParams(TextDocumentPositionParams):
    context: ReferenceContextDTO = Field(default_factory=ReferenceContextDTO)


class RenameParams(TextDocumentPositionParams):
    new_name: str = ""


class FormattingParams(TextDocumentParams):
    options: Dict[str, Any] = {}


class RangeParams(TextDocumentParams):
    range: RangeDTO = Field(default_factory=RangeDTO)


class RangeFormattingParams(RangeParams):
    options: Dict[str, Any] = {}


class CodeActionParams(RangeParams):
    context: Dict[str, Any] = {}


class CallHierarchyItemParams(DomainModel):
    item: Dict[str, Any] = {}


class ItemPayload(DomainModel):
    """Resolve requests carry the item itself as parameters."""


class ExecuteCommandParams(DomainModel):
    command: str = ""
    arguments: List[Any] = []


class FileEventDTO(DomainModel):
    uri: str = ""
    type: int = 1


class DidChangeWatchedFilesParams(DomainModel):
    changes: List[FileEventDTO] = []


class DidChangeConfigurationParams(DomainModel):
    settings: Any = None


class WorkspaceSymbolParams(DomainModel):
    query: str = ""


class InitializeParams(DomainModel):
    process_id: Optional[int] = None
    root_uri: Optional[str] = None
    root_path: Optional[str] = None
    capabilities: Dict[str, Any] = {}
    initialization_options: Any = None
    work_done_token: Optional[Union[int, str]] = None
    client_info: Optional[Dict[str, Any]] = None
    trace: Optional[str] = None


class ClientCapabilities(DomainModel):
    """Snapshot of what the connected client declared during initialize."""

    model_config = ConfigDict(extra="allow", frozen=True)

    workspace: Dict[str, Any] = {}
    text_document: Dict[str, Any] = {}
    window: Dict[str, Any] = {}
    general: Dict[str, Any] = {}
    experimental: Any = None

    def supports(self, *path: str) -> bool:
        node: Any = self.model_dump()
        for key in path:
            if not isinstance(node, dict):
                return False
            node = node.get(key)
        return bool(node)
