"""Immutable document store MCP server."""

import logging

from fastmcp import FastMCP

from .errors import CollectionError, DraftError
from .store import DocumentStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

mcp = FastMCP("Immutable Document Store")

store = DocumentStore()


@mcp.tool()
def insert_documents(documents: list[dict]) -> dict:
    """Insert documents; returns the stored documents with their identities."""
    try:
        inserted = store.insert_documents(documents)
    except (CollectionError, DraftError, TypeError) as exc:
        return {"inserted": [], "error": str(exc)}
    return {"inserted": inserted}


@mcp.tool()
def update_document(
    identity: int,
    set_fields: dict | None = None,
    unset_fields: list[str] | None = None,
) -> dict:
    """Set and unset fields of a stored document."""
    try:
        return {"updated": store.update_document(identity, set_fields, unset_fields)}
    except (CollectionError, DraftError, TypeError) as exc:
        return {"error": str(exc)}


@mcp.tool()
def remove_document(identity: int) -> dict:
    """Remove a document by identity."""
    try:
        return {"removed": store.remove_document(identity)}
    except CollectionError as exc:
        return {"error": str(exc)}


@mcp.tool()
def get_document(identity: int) -> dict:
    """Get a single document by identity."""
    doc = store.get_document(identity)
    if doc is None:
        return {"error": f"Document {identity} not found."}
    return doc


@mcp.tool()
def find_documents(query: dict | None = None) -> list[dict]:
    """Find documents matching a query (field equality or $lt/$gt/$in/... operators)."""
    return store.find_documents(query)


@mcp.tool()
def get_changes(since: int = 0) -> list[dict]:
    """Change feed entries (documents and patches) after the given sequence number."""
    return store.changes(since)


if __name__ == "__main__":
    mcp.run()
