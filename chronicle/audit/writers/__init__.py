"""Audit writers: one contract, several storage backends."""

from chronicle.audit.writers.base import AuditWriter, BackendWriter, WriteResult, chunked
from chronicle.audit.writers.composite import CompositeWriter
from chronicle.audit.writers.dynamodb import DynamoDBWriter
from chronicle.audit.writers.noop import NoOpWriter
from chronicle.audit.writers.postgres import PostgresWriter
from chronicle.audit.writers.sqs import SQSWriter

__all__ = [
    "AuditWriter",
    "BackendWriter",
    "CompositeWriter",
    "DynamoDBWriter",
    "NoOpWriter",
    "PostgresWriter",
    "SQSWriter",
    "WriteResult",
    "chunked",
]
