"""Schema management for relational providers.

The memory provider needs no schema; for SQLite and PostgreSQL providers the
tables are created from the SQLAlchemy metadata Protean builds per provider.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    return [
        (name, provider)
        for name, provider in domain.providers.items()
        if provider.conn_info["provider"] in RELATIONAL_PROVIDERS
    ]


def _register_models(domain: Domain, provider_name: str) -> None:
    # Touching a repository's DAO registers its model with the provider's metadata
    records = [
        *domain.registry.aggregates.values(),
        *domain.registry.entities.values(),
        *domain.registry.projections.values(),
    ]
    for record in records:
        if record.cls.meta_.provider == provider_name:
            domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> list[str]:
    """Create tables for every relational provider of ``domain``. Returns the provider names."""
    created = []
    with domain.domain_context():
        for name, provider in _relational_providers(domain):
            _register_models(domain, name)
            provider._metadata.create_all(create_engine(provider.conn_info["database_uri"]))
            created.append(name)
    return created


def drop_db(domain: Domain) -> list[str]:
    dropped = []
    with domain.domain_context():
        for name, provider in _relational_providers(domain):
            provider._metadata.drop_all(create_engine(provider.conn_info["database_uri"]))
            dropped.append(name)
    return dropped
