"""Default server capability descriptor.

Built in domain shape (snake_case keys) from the routed methods and the
server configuration; the lifecycle structures it into
`lsprotocol.types.ServerCapabilities` when answering initialize.
"""

from __future__ import annotations

from typing import Any, Iterable

from lsprotocol import types

from lspcore.config import ServerConfig

_PROVIDER_FLAGS = {
    types.TEXT_DOCUMENT_HOVER: "hover_provider",
    types.TEXT_DOCUMENT_REFERENCES: "references_provider",
    types.TEXT_DOCUMENT_DEFINITION: "definition_provider",
    types.TEXT_DOCUMENT_DECLARATION: "declaration_provider",
    types.TEXT_DOCUMENT_IMPLEMENTATION: "implementation_provider",
    types.TEXT_DOCUMENT_DOCUMENT_SYMBOL: "document_symbol_provider",
    types.TEXT_DOCUMENT_DOCUMENT_HIGHLIGHT: "document_highlight_provider",
    types.TEXT_DOCUMENT_FORMATTING: "document_formatting_provider",
    types.TEXT_DOCUMENT_RANGE_FORMATTING: "document_range_formatting_provider",
    types.TEXT_DOCUMENT_CODE_ACTION: "code_action_provider",
    types.TEXT_DOCUMENT_PREPARE_CALL_HIERARCHY: "call_hierarchy_provider",
    types.TEXT_DOCUMENT_LINKED_EDITING_RANGE: "linked_editing_range_provider",
    types.WORKSPACE_SYMBOL: "workspace_symbol_provider",
}


def server_capabilities(config: ServerConfig, methods: Iterable[str]) -> dict[str, Any]:
    routed = set(methods)
    capabilities: dict[str, Any] = {
        "text_document_sync": {
            "open_close": True,
            "change": types.TextDocumentSyncKind.Full.value,
            "save": {"include_text": True},
        },
    }
    for method, flag in _PROVIDER_FLAGS.items():
        if method in routed:
            capabilities[flag] = True
    if types.TEXT_DOCUMENT_COMPLETION in routed:
        capabilities["completion_provider"] = {
            "resolve_provider": types.COMPLETION_ITEM_RESOLVE in routed,
            "trigger_characters": list(config.completion_trigger_characters),
        }
    if types.TEXT_DOCUMENT_SIGNATURE_HELP in routed:
        capabilities["signature_help_provider"] = {
            "trigger_characters": list(config.signature_trigger_characters),
        }
    if types.TEXT_DOCUMENT_RENAME in routed:
        capabilities["rename_provider"] = {
            "prepare_provider": types.TEXT_DOCUMENT_PREPARE_RENAME in routed,
        }
    if types.TEXT_DOCUMENT_CODE_LENS in routed:
        capabilities["code_lens_provider"] = {
            "resolve_provider": types.CODE_LENS_RESOLVE in routed,
        }
    if types.WORKSPACE_EXECUTE_COMMAND in routed and config.commands:
        capabilities["execute_command_provider"] = {"commands": list(config.commands)}
    if config.semantic_token_types and types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL in routed:
        capabilities["semantic_tokens_provider"] = {
            "legend": {
                "token_types": list(config.semantic_token_types),
                "token_modifiers": list(config.semantic_token_modifiers),
            },
            "full": True,
            "range": types.TEXT_DOCUMENT_SEMANTIC_TOKENS_RANGE in routed,
        }
    return capabilities
