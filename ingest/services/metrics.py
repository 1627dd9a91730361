from __future__ import annotations

import uuid

from prometheus_client import Counter


DOCUMENTS_INDEXED_COUNTER = Counter(
    "fi_documents_indexed_total",
    "Files written to the generic document index per tenant",
    ["tenant_id"],
)

DOCUMENTS_PRUNED_COUNTER = Counter(
    "fi_documents_pruned_total",
    "Indexed documents deleted because the remote file vanished",
    ["tenant_id"],
)

MEETING_DOCUMENTS_SYNCED_COUNTER = Counter(
    "fi_meeting_documents_synced_total",
    "Meeting documents created or refreshed per tenant",
    ["tenant_id"],
)

MEETING_DOCUMENTS_SKIPPED_COUNTER = Counter(
    "fi_meeting_documents_skipped_total",
    "Meeting documents left untouched (approved or agenda) per tenant",
    ["tenant_id"],
)

ENRICHMENTS_COUNTER = Counter(
    "fi_enrichments_total",
    "Enrichment attempts per tenant and outcome",
    ["tenant_id", "outcome"],
)

PIPELINE_ERRORS_COUNTER = Counter(
    "fi_pipeline_errors_total",
    "Errors counted by the ingestion pipelines",
    ["pipeline"],
)


def _tenant_label(tenant_id: uuid.UUID | None) -> str:
    return str(tenant_id) if tenant_id else "unknown"


def record_indexed(tenant_id: uuid.UUID, count: int) -> None:
    if count > 0:
        DOCUMENTS_INDEXED_COUNTER.labels(tenant_id=_tenant_label(tenant_id)).inc(count)


def record_pruned(tenant_id: uuid.UUID, count: int) -> None:
    if count > 0:
        DOCUMENTS_PRUNED_COUNTER.labels(tenant_id=_tenant_label(tenant_id)).inc(count)


def record_synced(tenant_id: uuid.UUID, synced: int, skipped: int) -> None:
    label = _tenant_label(tenant_id)
    if synced > 0:
        MEETING_DOCUMENTS_SYNCED_COUNTER.labels(tenant_id=label).inc(synced)
    if skipped > 0:
        MEETING_DOCUMENTS_SKIPPED_COUNTER.labels(tenant_id=label).inc(skipped)


def record_enrichment(tenant_id: uuid.UUID, processed: int, errors: int) -> None:
    label = _tenant_label(tenant_id)
    if processed > 0:
        ENRICHMENTS_COUNTER.labels(tenant_id=label, outcome="processed").inc(processed)
    if errors > 0:
        ENRICHMENTS_COUNTER.labels(tenant_id=label, outcome="failed").inc(errors)


def record_errors(pipeline: str, count: int) -> None:
    if count > 0:
        PIPELINE_ERRORS_COUNTER.labels(pipeline=pipeline).inc(count)
