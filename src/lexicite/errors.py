# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Error taxonomy shared by the retrieval core, the web app and the MCP tools.
"""


class LexiciteError(Exception):
    """Base class for all errors raised by the retrieval core."""


class ValidationError(LexiciteError):
    """Missing or empty query/content, rejected before any work is done."""


class AuthError(LexiciteError):
    """Bad or missing shared secret on a trigger endpoint."""


class NotFoundError(LexiciteError):
    """Operation requested for an unknown source name."""


class UpstreamFetchError(LexiciteError):
    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


class IndexBuildError(LexiciteError):
    """The index could not be built from the current chunk set."""


class PersistenceError(LexiciteError):
    """Chunk/source store failure (insert, delete, metadata update).

    ``inserted`` counts chunks already persisted when a batch insert failed;
    earlier batches are not rolled back.
    """

    def __init__(self, message: str, inserted: int = 0):
        super().__init__(message)
        self.inserted = inserted


class RateLimitExceeded(LexiciteError):
    def __init__(self, result):
        super().__init__(
            f"Rate limit exceeded, retry in {result.reset_in_ms} ms"
        )
        self.result = result
