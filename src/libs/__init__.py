"""Clients for services outside the database: file storage and the chat completion API."""

from src.libs.blob_store import BlobStoreError, BlobStoreProtocol, LocalBlobStore
from src.libs.gpt_client import (
    GPTAPIError,
    GPTClientError,
    GPTClientProtocol,
    GPTRateLimitError,
    GPTResponse,
    GPTResponseFormatError,
    GPTTimeoutError,
    OpenAIClient,
)

__all__ = [
    "BlobStoreError",
    "BlobStoreProtocol",
    "GPTAPIError",
    "GPTClientError",
    "GPTClientProtocol",
    "GPTRateLimitError",
    "GPTResponse",
    "GPTResponseFormatError",
    "GPTTimeoutError",
    "LocalBlobStore",
    "OpenAIClient",
]
