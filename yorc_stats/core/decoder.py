"""
Tolerant decoding of generator configuration documents.

The generator writes its options under the "generator-jhipster" key and
the shape of that object changes between generator versions. Decoding is
driven by a field table: unknown keys are ignored, and missing or
wrongly-shaped values fall back to the field's default.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Union

from .errors import ParseError
from yorc_stats.storage.models import YoRC

CONFIGURATION_KEY = "generator-jhipster"

_DISABLED_VALUES = {"", "no", "false"}


def _text(value: Any) -> str:
    """Strings as-is, numbers rendered as text, anything else empty."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _flag(value: Any) -> bool:
    """Booleans as-is; option names such as "kafka" mean enabled."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() not in _DISABLED_VALUES
    return False


def _contains(item: str) -> Callable[[Any], bool]:
    def extract(value: Any) -> bool:
        return isinstance(value, list) and item in value
    return extract


def _languages(value: Any) -> FrozenSet[str]:
    if not isinstance(value, list):
        return frozenset()
    return frozenset(code for code in value if isinstance(code, str) and code)


@dataclass(frozen=True)
class FieldSpec:
    """One row of the decoding table.

    Attributes:
        name: Attribute name on YoRC
        json_key: Key inside the configuration object
        extract: Converts the raw JSON value (None when absent) to the field value
        root_fallback: Also look the key up at the document root
    """
    name: str
    json_key: str
    extract: Callable[[Any], Any]
    root_fallback: bool = False


FIELDS: List[FieldSpec] = [
    FieldSpec("jhipster_version", "jhipsterVersion", _text),
    FieldSpec("git_provider", "git-provider", _text, root_fallback=True),
    FieldSpec("node_version", "node-version", _text, root_fallback=True),
    FieldSpec("os", "os", _text, root_fallback=True),
    FieldSpec("arch", "arch", _text, root_fallback=True),
    FieldSpec("cpu", "cpu", _text, root_fallback=True),
    FieldSpec("cores", "cores", _text, root_fallback=True),
    FieldSpec("memory", "memory", _text, root_fallback=True),
    FieldSpec("user_language", "user-language", _text, root_fallback=True),
    FieldSpec("server_port", "serverPort", _text),
    FieldSpec("application_type", "applicationType", _text),
    FieldSpec("authentication_type", "authenticationType", _text),
    FieldSpec("cache_provider", "cacheProvider", _text),
    FieldSpec("enable_hibernate_cache", "enableHibernateCache", _flag),
    FieldSpec("websocket", "websocket", _flag),
    FieldSpec("database_type", "databaseType", _text),
    FieldSpec("dev_database_type", "devDatabaseType", _text),
    FieldSpec("prod_database_type", "prodDatabaseType", _text),
    FieldSpec("search_engine", "searchEngine", _flag),
    FieldSpec("message_broker", "messageBroker", _flag),
    FieldSpec("service_discovery_type", "serviceDiscoveryType", _flag),
    FieldSpec("build_tool", "buildTool", _text),
    FieldSpec("enable_swagger_codegen", "enableSwaggerCodegen", _flag),
    FieldSpec("client_framework", "clientFramework", _text),
    FieldSpec("use_sass", "useSass", _flag),
    FieldSpec("client_package_manager", "clientPackageManager", _text),
    FieldSpec("jhi_prefix", "jhiPrefix", _text),
    FieldSpec("enable_translation", "enableTranslation", _flag),
    FieldSpec("native_language", "nativeLanguage", _text),
    FieldSpec("has_protractor", "testFrameworks", _contains("protractor")),
    FieldSpec("has_gatling", "testFrameworks", _contains("gatling")),
    FieldSpec("has_cucumber", "testFrameworks", _contains("cucumber")),
    FieldSpec("selected_languages", "languages", _languages),
]

# JSON key -> attribute name, for callers that speak the generator's vocabulary
FIELD_NAMES_BY_JSON_KEY: Dict[str, str] = {
    spec.json_key: spec.name for spec in FIELDS if spec.json_key != "testFrameworks"
}


def decode_yorc(raw_document: Union[str, bytes]) -> YoRC:
    """Decode a submitted document into an unsaved YoRC.

    Args:
        raw_document: JSON text or UTF-8 bytes containing a "generator-jhipster" object

    Returns:
        YoRC without id, owner or creation date

    Raises:
        ParseError: If the text is not JSON (or not UTF-8) or the configuration object is missing
    """
    try:
        root = json.loads(raw_document)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Document is not valid JSON: {e}") from e

    if not isinstance(root, dict):
        raise ParseError("Document root must be a JSON object")

    configuration = root.get(CONFIGURATION_KEY)
    if not isinstance(configuration, dict):
        raise ParseError(f"Document has no '{CONFIGURATION_KEY}' object")

    values = {}
    for spec in FIELDS:
        if spec.json_key in configuration:
            raw_value = configuration[spec.json_key]
        elif spec.root_fallback:
            raw_value = root.get(spec.json_key)
        else:
            raw_value = None
        values[spec.name] = spec.extract(raw_value)
    return YoRC(**values)
