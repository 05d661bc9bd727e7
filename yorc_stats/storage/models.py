"""
Data models for storage layer.

Defines the persisted generator-configuration snapshot and its owner.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import FrozenSet, List, Optional


@dataclass(frozen=True)
class Owner:
    """Identity a snapshot is attributed to.

    `login` links the owner to a user account; anonymous submissions
    have no owner at all.
    """
    id: Optional[int] = None
    login: Optional[str] = None


@dataclass(frozen=True)
class YoRC:
    """Immutable generator-configuration snapshot.

    Once written, records are never modified; they can only be deleted.
    Every categorical field keeps whatever value the generator sent,
    including values unknown at the time this schema was written.
    """
    creation_date: Optional[datetime] = None

    # Generator environment
    jhipster_version: str = ""
    git_provider: str = ""
    node_version: str = ""
    os: str = ""
    arch: str = ""
    cpu: str = ""
    cores: str = ""
    memory: str = ""
    user_language: str = ""

    # Application options
    server_port: str = ""
    application_type: str = ""
    authentication_type: str = ""
    cache_provider: str = ""
    enable_hibernate_cache: bool = False
    websocket: bool = False
    database_type: str = ""
    dev_database_type: str = ""
    prod_database_type: str = ""
    search_engine: bool = False
    message_broker: bool = False
    service_discovery_type: bool = False
    build_tool: str = ""
    enable_swagger_codegen: bool = False
    client_framework: str = ""
    use_sass: bool = False
    client_package_manager: str = ""
    jhi_prefix: str = ""
    enable_translation: bool = False
    native_language: str = ""
    has_protractor: bool = False
    has_gatling: bool = False
    has_cucumber: bool = False

    selected_languages: FrozenSet[str] = field(default_factory=frozenset)
    owner_id: Optional[int] = None
    id: Optional[int] = None


def option_columns() -> List[str]:
    """Names of the scalar option fields stored as plain columns."""
    excluded = {"id", "creation_date", "owner_id", "selected_languages"}
    return [f.name for f in fields(YoRC) if f.name not in excluded]


def category_columns() -> List[str]:
    """Names of the free-text categorical fields usable for breakdowns."""
    return [f.name for f in fields(YoRC) if f.type is str]
