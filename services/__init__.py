"""
services/ — External backend adapters

Thin async clients for the HTTP and database services behind Plugbot's
capabilities. Every failure surfaces as a CapabilityBackendError subclass.

    TranslatorClient      Azure AI Translator (REST v3)
    BingWebSearchClient   Bing Web Search v7
    DocumentSearchClient  Azure AI Search (vector + semantic)
    SqlConnectionFactory  read-only SQL over sqlite3
"""

from services.bing import BingWebSearchClient
from services.search import DocumentSearchClient
from services.sql import SqlConnectionFactory
from services.translator import TranslatorClient

__all__ = [
    "BingWebSearchClient",
    "DocumentSearchClient",
    "SqlConnectionFactory",
    "TranslatorClient",
]
