"""Content fingerprinting for namespace-scoped deduplication."""

import hashlib


def generate_content_hash(namespace: str, content: str) -> str:
    """SHA-256 hex digest of ``"<namespace>:<content>"``.

    The namespace is part of the digest so identical content in two
    namespaces never shares a fingerprint.
    """
    return hashlib.sha256(f"{namespace}:{content}".encode()).hexdigest()
