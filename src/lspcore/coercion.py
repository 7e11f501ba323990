"""Coercion between wire-shaped and domain-shaped values.

Inbound coercion is permissive: `to_domain` never fails and fills defaults for
anything missing or invalid. Outbound coercion is strict: `to_wire` structures
the domain value into its `lsprotocol` type and substitutes the shape's
neutral fallback, with a warning, when the value does not conform. A client
never receives a malformed payload and a bad result never aborts its call.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, TypeVar

import attrs
from lsprotocol import types
from lsprotocol.converters import get_converter
from pydantic import BaseModel, ValidationError

from lspcore.json_types import JSONValue

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_converter = get_converter()

_CAMEL_KEY = re.compile(r"^[a-z][a-z0-9]*(?:[A-Z][a-z0-9]*)+$")
_SNAKE_KEY = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z0-9]+)+$")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _none() -> None:
    return None


@dataclass(frozen=True)
class Shape:
    """Expected wire shape of an outbound value."""

    name: str
    type: Any
    fallback: Callable[[], Any] = _none


LOCATIONS = Shape("locations", List[types.Location], list)
LOCATION = Shape("location", types.Location)
COMPLETION_ITEMS = Shape("completion-items", List[types.CompletionItem], list)
COMPLETION_ITEM = Shape("completion-item", types.CompletionItem)
PREPARE_RENAME = Shape("prepare-rename", types.Range)
WORKSPACE_EDIT = Shape("workspace-edit", types.WorkspaceEdit)
HOVER = Shape("hover", types.Hover)
SIGNATURE_HELP = Shape("signature-help", types.SignatureHelp)
EDITS = Shape("edits", List[types.TextEdit], list)
CODE_ACTIONS = Shape("code-actions", List[types.CodeAction], list)
CODE_LENSES = Shape("code-lenses", List[types.CodeLens], list)
CODE_LENS = Shape("code-lens", types.CodeLens)
DOCUMENT_SYMBOLS = Shape("document-symbols", List[types.DocumentSymbol], list)
DOCUMENT_HIGHLIGHTS = Shape("document-highlights", List[types.DocumentHighlight], list)
SEMANTIC_TOKENS = Shape("semantic-tokens", types.SemanticTokens)
CALL_HIERARCHY_ITEMS = Shape("call-hierarchy-items", List[types.CallHierarchyItem], list)
CALL_HIERARCHY_INCOMING_CALLS = Shape(
    "call-hierarchy-incoming-calls", List[types.CallHierarchyIncomingCall], list
)
CALL_HIERARCHY_OUTGOING_CALLS = Shape(
    "call-hierarchy-outgoing-calls", List[types.CallHierarchyOutgoingCall], list
)
LINKED_EDITING_RANGES = Shape("linked-editing-ranges", types.LinkedEditingRanges)
WORKSPACE_SYMBOLS = Shape("workspace-symbols", List[types.SymbolInformation], list)
SERVER_CAPABILITIES = Shape(
    "server-capabilities", types.ServerCapabilities, types.ServerCapabilities
)

PUBLISH_DIAGNOSTICS_PARAMS = Shape(
    "publish-diagnostics-params", types.PublishDiagnosticsParams
)
APPLY_WORKSPACE_EDIT_PARAMS = Shape(
    "apply-workspace-edit-params", types.ApplyWorkspaceEditParams
)
SHOW_DOCUMENT_PARAMS = Shape("show-document-params", types.ShowDocumentParams)
PROGRESS_BEGIN = Shape("progress-begin", types.WorkDoneProgressBegin)
PROGRESS_REPORT = Shape("progress-report", types.WorkDoneProgressReport)
PROGRESS_END = Shape("progress-end", types.WorkDoneProgressEnd)
SHOW_MESSAGE_REQUEST_PARAMS = Shape(
    "show-message-request-params", types.ShowMessageRequestParams
)
SHOW_MESSAGE_PARAMS = Shape("show-message-params", types.ShowMessageParams)
REGISTRATION_PARAMS = Shape("registration-params", types.RegistrationParams)
UNREGISTRATION_PARAMS = Shape("unregistration-params", types.UnregistrationParams)


def snake_key(key: str) -> str:
    if not _CAMEL_KEY.match(key):
        return key
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def camel_key(key: str) -> str:
    if not _SNAKE_KEY.match(key):
        return key
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


# Values the client echoes back or owns verbatim; their keys are never renamed.
_OPAQUE_KEYS = frozenset(
    {"data", "arguments", "settings", "initializationOptions", "initialization_options"}
)


def _rekey(value: Any, rename: Callable[[str], str]) -> Any:
    if isinstance(value, Mapping):
        return {
            (rename(key) if isinstance(key, str) else key): (
                item if key in _OPAQUE_KEYS else _rekey(item, rename)
            )
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_rekey(item, rename) for item in value]
    return value


def _plain(value: Any) -> Any:
    if attrs.has(type(value)):
        return _converter.unstructure(value)
    if isinstance(value, BaseModel):
        return _plain(value.model_dump(exclude_none=True))
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def domain_value(value: Any) -> Any:
    """Plain domain rendition of a wire value: JSON with snake_case keys."""
    return _rekey(_plain(value), snake_key)


def wire_value(value: Any) -> JSONValue:
    """Plain JSON rendition of a domain value: camelCase keys."""
    return _rekey(_plain(value), camel_key)


def to_json(value: Any) -> JSONValue:
    """Unstructure an `lsprotocol` value (or a list of them) to JSON."""
    return _converter.unstructure(value)


def _drop_path(data: Any, loc: tuple[int | str, ...]) -> None:
    while loc and not isinstance(loc[-1], str):
        loc = loc[:-1]
    if not loc:
        return
    node = data
    for key in loc[:-1]:
        if isinstance(node, dict) and key in node:
            node = node[key]
        elif isinstance(node, list) and isinstance(key, int) and key < len(node):
            node = node[key]
        else:
            return
    if isinstance(node, dict):
        node.pop(loc[-1], None)


def _drop_top_level(data: dict[str, Any], loc: tuple[int | str, ...]) -> None:
    data.pop(loc[0], None)


def to_domain(value: Any, shape: type[ModelT]) -> ModelT:
    """Convert wire parameters into `shape`; never fails."""
    data = domain_value(value) if value is not None else {}
    if not isinstance(data, dict):
        logger.warning("Expected an object for %s, got %r", shape.__name__, value)
        data = {}
    for drop in (_drop_path, _drop_top_level):
        try:
            return shape.model_validate(data)
        except ValidationError as exc:
            locations = [tuple(error["loc"]) for error in exc.errors() if error.get("loc")]
            logger.warning(
                "Dropping invalid %s fields: %s",
                shape.__name__,
                ", ".join(".".join(str(part) for part in loc) for loc in locations),
            )
            for loc in locations:
                drop(data, loc)
    try:
        return shape.model_validate(data)
    except ValidationError:
        logger.warning("Falling back to defaults for %s: %r", shape.__name__, value)
        return shape()


def to_wire(value: Any, shape: Shape, *, method: str | None = None) -> Any:
    """Structure a domain value into `shape`, or return its fallback; never raises."""
    if value is None:
        return shape.fallback()
    try:
        return _converter.structure(wire_value(value), shape.type)
    except Exception as exc:
        logger.warning(
            "%s: value does not conform to %s, sending fallback instead: %r (%s)",
            method or "push",
            shape.name,
            value,
            exc,
        )
        return shape.fallback()
