"""Expose constructed client wrappers."""

from .document_store import DELETE_FIELD, DocumentStore, open_document_store
from .dynamodb import DynamoDBDocumentStore
from .instagram import InstagramProvider
from .linkedin import LinkedInProvider
from .social_provider import SocialProvider
from .sqlite_store import SQLiteStore
from .twitter import TwitterProvider

PROVIDER_CLASSES: dict[str, type[SocialProvider]] = {
    TwitterProvider.name: TwitterProvider,
    LinkedInProvider.name: LinkedInProvider,
    InstagramProvider.name: InstagramProvider,
}

__all__ = [
    "DELETE_FIELD",
    "DocumentStore",
    "DynamoDBDocumentStore",
    "InstagramProvider",
    "LinkedInProvider",
    "PROVIDER_CLASSES",
    "SQLiteStore",
    "SocialProvider",
    "TwitterProvider",
    "open_document_store",
]
