"""
Application context: the one set of collaborators shared by a session.

Built once at start-up with build_context() and passed to whatever needs
the record store; there is no module-level store instance.
"""

from transit_monitor.backend import BackendClient
from transit_monitor.config import Settings, load_settings
from transit_monitor.core.rules import RuleEngine, load_rules
from transit_monitor.ingest import AnomalyClassifier, ImportService, build_classifier
from transit_monitor.observability.logger import get_logger
from transit_monitor.storage import FileKeyValueStorage, KeyValueStorage, RecordStore

logger = get_logger(__name__)


class AppContext:
    """
    Owns settings, storage, record store, classifier, import service and backend client.
    """

    def __init__(
        self,
        settings: Settings,
        storage: KeyValueStorage,
        store: RecordStore,
        classifier: AnomalyClassifier,
        importer: ImportService,
        backend: BackendClient,
    ):
        self.settings = settings
        self.storage = storage
        self.store = store
        self.classifier = classifier
        self.importer = importer
        self.backend = backend

    def __repr__(self) -> str:
        return f"AppContext(storage={type(self.storage).__name__}, key={self.store.key})"


def build_context(settings: Settings | None = None, storage: KeyValueStorage | None = None) -> AppContext:
    """
    Wire the application together.

    Args:
        settings: Settings to use (load_settings() if None)
        storage: Storage backend (a FileKeyValueStorage in settings.storage_dir if None)

    Returns:
        AppContext

    Raises:
        ConfigError: If settings cannot be loaded
        ValueError: If the rules file or classifier setting is invalid
    """
    settings = settings or load_settings()
    storage = storage or FileKeyValueStorage(settings.storage_dir)

    rule_engine = RuleEngine(load_rules(settings.rules_path))
    classifier = build_classifier(settings.classifier, settings.classifier_seed, settings.fixed_probability)

    store = RecordStore(
        storage,
        key=settings.storage_key,
        budget_bytes=settings.storage_budget_bytes,
        compact_threshold=settings.compact_threshold,
        sample_size=settings.compact_sample_size,
        rule_engine=rule_engine,
    )
    importer = ImportService(store, classifier)
    backend = BackendClient(base_url=settings.api_base_url, timeout=settings.api_timeout_seconds)

    logger.debug(
        "Application context built",
        extra={"storage_backend": type(storage).__name__, "classifier": classifier.name},
    )
    return AppContext(settings, storage, store, classifier, importer, backend)
