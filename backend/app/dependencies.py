"""Service wiring for the journal archive.

The lifespan builds one :class:`Services` container from the loaded config
and registers it with :func:`set_services`.  Routers receive it through the
``get_services`` dependency, which tests replace via
``app.dependency_overrides``.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from app.config import AppConfig
from app.downloads.resolver import DownloadResolver
from app.ingest.service import IngestService
from app.intake.service import UploadIntake
from app.records.schemas import RecordKind
from app.records.service import RecordStore
from app.storage.drive import GoogleDriveStore
from app.storage.provider import ObjectStoreProvider
from app.storage.s3 import S3ObjectStore
from app.storage.uploader import StorageUploader

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: AppConfig
    store: RecordStore
    uploader: StorageUploader
    ingest: IngestService
    resolver: DownloadResolver


def build_providers(config: AppConfig) -> List[ObjectStoreProvider]:
    """Create the remote providers enabled in *config*, primary first."""
    providers: List[ObjectStoreProvider] = []

    store_cfg = config.object_store
    if store_cfg.enabled and store_cfg.bucket:
        aws = config.secrets.aws
        providers.append(
            S3ObjectStore(
                bucket=store_cfg.bucket,
                region_name=store_cfg.region,
                endpoint_url=store_cfg.endpoint_url,
                public_base_url=store_cfg.public_base_url,
                public_read=store_cfg.public_read,
                aws_access_key_id=aws.access_key_id or None,
                aws_secret_access_key=aws.secret_access_key or None,
                aws_session_token=aws.session_token or None,
            )
        )
        logger.info("Object store ready: s3://%s (%s)", store_cfg.bucket, store_cfg.region)
    elif store_cfg.enabled:
        logger.warning("Object store enabled but no bucket configured; S3 disabled.")

    google = config.secrets.google
    if config.drive.enabled:
        if google.client_id and google.client_secret and google.refresh_token:
            providers.append(
                GoogleDriveStore(
                    client_id=google.client_id,
                    client_secret=google.client_secret,
                    refresh_token=google.refresh_token,
                    folder_id=config.drive.folder_id or None,
                    timeout=config.download.http_timeout_seconds,
                )
            )
            logger.info("Google Drive provider ready (folder=%s)", config.drive.folder_id or "root")
        else:
            logger.warning("Drive enabled but Google OAuth secrets are missing; Drive disabled.")

    if not providers:
        logger.warning("No remote storage provider configured; files will stay on local disk.")
    return providers


def build_services(
    config: AppConfig,
    providers: Optional[List[ObjectStoreProvider]] = None,
) -> Services:
    """Build the service graph.  *providers* overrides the configured ones."""
    if providers is None:
        providers = build_providers(config)

    storage = config.storage
    roots = {
        RecordKind.JOURNAL: Path(storage.root),
        RecordKind.SUBMISSION: Path(storage.submissions_root),
    }
    intakes = {
        kind: UploadIntake(
            root,
            max_file_size_bytes=config.intake.max_file_size_bytes,
            min_abstract_length=config.intake.min_abstract_length,
        )
        for kind, root in roots.items()
    }
    for intake in intakes.values():
        intake.ensure_staging_dir()

    store = RecordStore(config.database.path)
    uploader = StorageUploader(providers, key_prefix=storage.key_prefix)
    resolver = DownloadResolver(
        uploader,
        roots,
        base_dir=Path(storage.base_dir),
        temp_dir=Path(storage.temp_dir),
        legacy_roots=[Path(p) for p in storage.legacy_roots],
        http_timeout=config.download.http_timeout_seconds,
    )
    return Services(
        config=config,
        store=store,
        uploader=uploader,
        ingest=IngestService(store, uploader, intakes),
        resolver=resolver,
    )


async def close_services(services: Services) -> None:
    await services.resolver.aclose()
    for provider in services.uploader.providers:
        if isinstance(provider, GoogleDriveStore):
            provider.close()
    services.store.close()


_services: Optional[Services] = None


def get_services() -> Services:
    """Return the process-wide services (FastAPI dependency)."""
    if _services is None:
        raise RuntimeError("Services are not initialised")
    return _services


def set_services(services: Optional[Services]) -> None:
    """Set (or clear) the process-wide services."""
    global _services
    _services = services
