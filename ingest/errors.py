from __future__ import annotations


class IngestError(Exception):
    """Base class for failures raised by the ingestion pipelines."""


class ConfigurationMissing(IngestError):
    """The tenant has no storage credentials or no active folder integrations."""


class TransientFetchFailure(IngestError):
    """A single listing page, export or enrichment call failed."""


class IntegrationFailure(IngestError):
    """A whole folder integration could not be crawled."""

    def __init__(self, integration_id, message: str) -> None:
        super().__init__(message)
        self.integration_id = integration_id


class PersistenceFailure(IngestError):
    """A row write (document upsert, tag update) was rejected by the database."""


class UnsupportedExport(IngestError):
    """The storage backend cannot turn this mime type into plain text."""


class TagNotFound(IngestError, LookupError):
    pass
