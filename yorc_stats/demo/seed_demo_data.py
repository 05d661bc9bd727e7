# yorc_stats/demo/seed_demo_data.py
"""
Synthetic snapshots for demos and dashboards during development.

All randomness comes from the `random.Random` passed in, so the same
seed always produces the same records.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from yorc_stats.storage.models import YoRC
from yorc_stats.storage.repository import YoRCRepository, initialize_schema

VOCABULARIES = {
    "jhipster_version": ["beta-5.0.2", "beta-5.0.1", "4.14.4"],
    "user_language": ["en-gb", "fr-fr", "pt-pt"],
    "arch": ["x64", "x86"],
    "application_type": ["monolith", "microservice", "gateway", "uaa"],
    "authentication_type": ["jwt", "oauth2", "session", "uaa"],
    "cache_provider": ["ehcache", "hazelcast", "infinispan", "no"],
    "database_type": ["no", "sql", "mongodb", "cassandra", "couchbase"],
    "dev_database_type": ["h2Disk", "h2Memory", "mysql", "mariadb", "postgresql", "oracle"],
    "prod_database_type": ["mysql", "mariadb", "postgresql", "oracle"],
    "build_tool": ["maven", "gradle"],
    "client_framework": ["react", "angularX"],
    "client_package_manager": ["yarn", "npm"],
    "native_language": ["en", "pt-pt", "pt-br", "fr", "ar", "es", "de", "it", "ja", "zh-cn"],
}

FLAGS = [
    "enable_hibernate_cache",
    "websocket",
    "search_engine",
    "message_broker",
    "service_discovery_type",
    "enable_swagger_codegen",
    "use_sass",
    "enable_translation",
    "has_protractor",
    "has_gatling",
    "has_cucumber",
]


def generate_fake_records(
    count: int,
    rng: random.Random,
    now: Optional[datetime] = None,
    span_days: int = 700
) -> List[YoRC]:
    """Build unsaved snapshots with creation dates spread over a window.

    Args:
        count: Number of records to generate
        rng: Random source
        now: End of the window, defaults to the current UTC time
        span_days: Length of the window ending at `now`

    Returns:
        Records with creation dates in (now - span_days, now]
    """
    if count < 0:
        raise ValueError("count cannot be negative")
    if span_days <= 0:
        raise ValueError("span_days must be > 0")

    now = now or datetime.now(timezone.utc)
    span_seconds = int(timedelta(days=span_days).total_seconds())

    records = []
    for _ in range(count):
        values = {name: rng.choice(choices) for name, choices in VOCABULARIES.items()}
        values.update({name: rng.random() < 0.5 for name in FLAGS})
        languages = rng.sample(VOCABULARIES["native_language"], k=rng.randint(1, 3))
        records.append(YoRC(
            creation_date=now - timedelta(seconds=rng.randrange(span_seconds)),
            server_port="8080",
            memory="16",
            selected_languages=frozenset(languages),
            **values
        ))
    return records


def seed_database(repository: YoRCRepository, count: int = 3000, seed: int = 42) -> int:
    """Insert synthetic snapshots into a repository.

    Returns:
        Number of records inserted
    """
    initialize_schema(repository.db_path)
    records = generate_fake_records(count, random.Random(seed))
    for record in records:
        repository.save(record)
    return len(records)


if __name__ == "__main__":
    inserted = seed_database(YoRCRepository())
    print(f"Demo data inserted: {inserted} records")
