"""
Process-wide collaborators, built once at startup.
"""
import logging
from dataclasses import dataclass

from app.services.athena_client import AthenaQueryBackend
from app.services.bulk import BulkLookupService
from app.services.cache import CacheGateway
from app.services.lookup import EmailLookupService
from app.services.query_resolver import QueryResolver
from app.services.results_store import ResultsStore
from app.services.verification import EmailVerifier, SesVerificationProvider

logger = logging.getLogger(__name__)


@dataclass
class Services:
    cache: CacheGateway
    results_store: ResultsStore
    lookup: EmailLookupService
    bulk: BulkLookupService
    verifier: EmailVerifier

    async def close(self):
        try:
            await self.cache.close()
        except Exception as e:
            logger.warning(f"Error closing cache connection: {e}")


def wire_services(query_backend, cache, results_store, verification_provider) -> Services:
    resolver = QueryResolver(query_backend)
    lookup = EmailLookupService(cache, resolver, results_store)
    verifier = EmailVerifier(verification_provider)
    bulk = BulkLookupService(lookup, verifier, results_store)
    return Services(
        cache=cache,
        results_store=results_store,
        lookup=lookup,
        bulk=bulk,
        verifier=verifier,
    )


def build_services() -> Services:
    """Real AWS + Redis clients from settings."""
    return wire_services(
        query_backend=AthenaQueryBackend(),
        cache=CacheGateway(),
        results_store=ResultsStore(),
        verification_provider=SesVerificationProvider(),
    )
