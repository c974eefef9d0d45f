"""Stable item identifiers used for refresh-time deduplication."""

import hashlib

ITEM_ID_LENGTH = 32


def derive_item_id(feed_id: str, link: str) -> str:
    """Derive a deterministic item id from the owning feed and the entry link.

    Two fetches of the same document produce the same ids for the same
    entries, so the repository can tell "already have this" without keeping
    any fetch history.

    Entries of one feed that share an empty link get the same id and are
    therefore treated as a single entry.
    """
    fingerprint = hashlib.sha256(f"{feed_id}|{link}".encode("utf-8"))
    return fingerprint.hexdigest()[:ITEM_ID_LENGTH]
