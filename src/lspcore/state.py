"""Shared server state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lspcore.schema import ClientCapabilities, TextDocumentDTO

if TYPE_CHECKING:
    from lspcore.producer import Producer


@dataclass
class ServerState:
    """State shared between the lifecycle, the producer and feature handlers.

    `client_capabilities` is replaced once, during initialize, and only read
    afterwards. Document contents belong to the feature handlers; the core
    only clears them on shutdown.
    """

    documents: dict[str, TextDocumentDTO] = field(default_factory=dict)
    client_capabilities: ClientCapabilities = field(default_factory=ClientCapabilities)
    client_settings: dict[str, Any] = field(default_factory=dict)
    server_capabilities: dict[str, Any] = field(default_factory=dict)
    root_uri: str | None = None
    producer: Producer | None = None

    def reset_documents(self) -> None:
        self.documents.clear()
