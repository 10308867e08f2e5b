import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path

from ipguardian.config.settings import Settings
from ipguardian.database.connection import create_pool
from ipguardian.database.repositories.factory import CatalogRepositoryFactory
from ipguardian.database.schema import apply_schema
from ipguardian.ingestion.exceptions import BatchLimitError
from ipguardian.ingestion.models import UploadRequest
from ipguardian.ingestion.orchestrator import IngestionOrchestrator, build_orchestrator
from ipguardian.ingestion.serializer import OutcomeSerializer
from ipguardian.logging.logger import Log
from ipguardian.storage.factory import ObjectStoreFactory


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ipguardian",
        description="Ingest files into the object store and record them in the catalog.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="files to ingest")
    parser.add_argument("--owner", required=True, help="owner id to record the files under")
    parser.add_argument("--public", action="store_true", help="mark the entries public")
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="create the catalog table and indexes before ingesting",
    )
    return parser.parse_args(argv)


def _stage_all(
    orchestrator: IngestionOrchestrator,
    files: Sequence[Path],
    owner_id: str,
    is_public: bool,
) -> list[UploadRequest]:
    """Copy every input into the staging area so cleanup never touches the originals."""
    requests: list[UploadRequest] = []
    try:
        for path in files:
            staged = orchestrator.staging.stage(path, path.name)
            requests.append(
                UploadRequest(
                    path=staged,
                    filename=path.name,
                    owner_id=owner_id,
                    declared_size=path.stat().st_size,
                    is_public=is_public,
                )
            )
    except OSError:
        orchestrator.staging.discard(r.path for r in requests)
        raise
    return requests


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: settings -> pool/store -> orchestrator -> batch ingest."""
    args = _parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    pool = create_pool(settings) if settings.catalog_backend.lower() == "postgres" else None
    store = ObjectStoreFactory.create(settings)
    try:
        if args.init_db and pool is not None:
            with pool.connection() as conn:
                apply_schema(conn)
        catalog = CatalogRepositoryFactory.create(settings, pool)
        orchestrator = build_orchestrator(settings, catalog, store)

        try:
            requests = _stage_all(orchestrator, args.files, args.owner, args.public)
        except OSError as exc:
            Log.error(f"Could not stage input files: {exc}")
            return 2
        try:
            result = orchestrator.ingest_batch(requests)
        except BatchLimitError as exc:
            Log.error(str(exc))
            return 2

        print(json.dumps(OutcomeSerializer(store).batch(result), indent=2))
        return 1 if result.summary.failed else 0
    finally:
        store.close()
        if pool is not None:
            pool.close()


if __name__ == "__main__":
    sys.exit(main())
