"""Repository synchronization orchestrator.

Sequences the object store, repository builder/merger and signer to either
publish new packages into the remote repository or rebuild the remote
repository from what it already holds. Each run is strictly sequential and
fails fast: the first error aborts the run and nothing already written to
the store is rolled back.
"""

import contextlib
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from ..common.config import PublishConfig, ReplaceStrategy
from ..common.errors import LocalIOError, ValidationError
from ..common.logger import get_logger
from ..repos.base import (
    PackageArtifact,
    RepositoryBuilder,
    RepositoryMerger,
    RepositorySnapshot,
    SignatureState,
)
from ..repos.catalog import MANIFEST_NAME, REPODATA_DIR, SIGNATURE_SUFFIX, Catalog
from ..signing.base import Signer
from ..store.base import ObjectInfo, ObjectStore
from ..store.prefix import RemotePrefix
from .lease import PublishLease, is_lease_key
from .workspace import Workspace

logger = get_logger("sync")


class SyncPlan(Enum):
    """Path chosen for a run."""

    NOTHING_TO_REBUILD = "nothing-to-rebuild"
    REBUILD = "rebuild"
    FRESH_PUBLISH = "fresh-publish"
    INCREMENTAL_PUBLISH = "incremental-publish"


@dataclass
class SyncResult:
    """Result of one orchestrator run."""

    plan: Optional[SyncPlan] = None
    packages: List[str] = field(default_factory=list)
    downloaded: List[str] = field(default_factory=list)
    uploaded: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    delete_failures: Dict[str, str] = field(default_factory=dict)
    signed: List[str] = field(default_factory=list)
    sync_date: str = ""
    duration_seconds: float = 0.0

    @property
    def mutated_remote(self) -> bool:
        """Check if the run wrote to or deleted from the repository."""
        return bool(self.uploaded or self.deleted)


def _upload_order(relative_path: str) -> tuple:
    """Sort key: packages, catalog data, manifest signature, manifest."""
    if relative_path == f"{REPODATA_DIR}/{MANIFEST_NAME}":
        return (3, relative_path)
    if relative_path == f"{REPODATA_DIR}/{MANIFEST_NAME}{SIGNATURE_SUFFIX}":
        return (2, relative_path)
    if relative_path.startswith(REPODATA_DIR + "/"):
        return (1, relative_path)
    return (0, relative_path)


class SyncOrchestrator:
    """Publishes or rebuilds one remote repository per run.

    Collaborators are injected so each can be replaced in tests:
    - store: object store holding the published repository
    - builder: creates a catalog for a directory of packages
    - merger: merges the published catalog with a new snapshot
    - signer: signs packages and catalog manifests
    """

    def __init__(
        self,
        config: PublishConfig,
        store: ObjectStore,
        builder: RepositoryBuilder,
        merger: RepositoryMerger,
        signer: Signer,
    ):
        self.config = config
        self.store = store
        self.builder = builder
        self.merger = merger
        self.signer = signer
        self.remote = RemotePrefix(config.bucket, config.prefix)

    @property
    def passphrase(self) -> Optional[str]:
        return self.config.sign_passphrase or None

    def run(self) -> SyncResult:
        """Execute the rebuild or publish path chosen by the config.

        Returns:
            SyncResult describing what was done

        Raises:
            PublishError: On the first failure of any step
        """
        start = time.monotonic()
        result = SyncResult()

        self.config.validate()
        artifacts = [] if self.config.rebuild else self.collect_artifacts()

        if self.config.rebuild:
            logger.info(f"Rebuild mode enabled for {self.remote.url()}")
            # Checked before the lease so an empty prefix is never written to
            if not self._list(self.remote.listing_prefix):
                logger.info(f"No existing objects found in {self.remote.url()}")
                result.plan = SyncPlan.NOTHING_TO_REBUILD

        if result.plan is None:
            with self._lease(), Workspace(self.config.work_dir, self.config.keep_workdir) as workspace:
                if self.config.rebuild:
                    self._rebuild(workspace, result)
                else:
                    self._publish(workspace, artifacts, result)

        result.sync_date = datetime.now().isoformat()
        result.duration_seconds = time.monotonic() - start
        logger.info(
            f"Finished {result.plan.value} for {self.remote.url()}: "
            f"{len(result.uploaded)} uploaded, {len(result.deleted)} deleted "
            f"in {result.duration_seconds:.1f}s"
        )
        return result

    def collect_artifacts(self) -> List[PackageArtifact]:
        """Validate the input packages.

        Duplicate base filenames keep the last occurrence.

        Raises:
            ValidationError: If no packages were given or one is not a file
        """
        if not self.config.packages:
            raise ValidationError("At least one RPM file must be provided")

        by_name: Dict[str, PackageArtifact] = {}
        for package in self.config.packages:
            artifact = PackageArtifact(Path(package))
            if not artifact.source_path.is_file():
                raise ValidationError(f"RPM file not found: {package}")
            if not artifact.looks_like_rpm():
                logger.warning(f"{package} does not look like an RPM package")
            if artifact.filename in by_name:
                logger.warning(
                    f"{artifact.filename} given more than once; using {package}"
                )
                del by_name[artifact.filename]
            by_name[artifact.filename] = artifact

        return list(by_name.values())

    def _lease(self):
        if not self.config.lock.enabled:
            return contextlib.nullcontext()
        return PublishLease(
            self.store,
            self.remote,
            ttl_seconds=self.config.lock.ttl_seconds,
            owner=self.config.lock.owner,
        )

    def _list(self, prefix: str) -> List[ObjectInfo]:
        """List keys under prefix that belong to this repository.

        Lease objects are skipped, including those of nested repositories.
        """
        return [
            obj for obj in self.store.list(self.remote.bucket, prefix)
            if obj.key.startswith(prefix)
            and self.remote.contains(obj.key)
            and not is_lease_key(obj.key)
        ]

    def _download(self, key: str, dest: Path, result: SyncResult) -> None:
        self.store.get(self.remote.bucket, key, str(dest))
        result.downloaded.append(key)

    def _sign_catalog(self, catalog: Catalog) -> None:
        if not catalog.exists():
            raise LocalIOError("sign", str(catalog.manifest_path), "manifest not found")
        self.signer.sign_manifest(catalog.manifest_path, self.passphrase)

    def _verify_catalog(
        self,
        snapshot: RepositorySnapshot,
        published: Optional[Set[str]] = None,
        required: Iterable[str] = (),
    ) -> None:
        """Check that the catalog matches what the store will hold.

        Args:
            snapshot: Snapshot about to be uploaded
            published: Package locations already in the store and not uploaded again
            required: Package filenames the catalog must list

        Raises:
            LocalIOError: If the catalog references a package that will not be
                in the store, or leaves out a required one
        """
        catalog = snapshot.catalog
        available = {
            path.relative_to(snapshot.root).as_posix() for path in snapshot.files()
        }
        available.update(published or ())

        missing = sorted(catalog.package_locations() - available)
        if missing:
            raise LocalIOError(
                "verify catalog",
                str(catalog.manifest_path),
                f"references packages that are not published: {', '.join(missing)}",
            )

        omitted = sorted(set(required) - catalog.package_filenames())
        if omitted:
            raise LocalIOError(
                "verify catalog",
                str(catalog.manifest_path),
                f"does not list new packages: {', '.join(omitted)}",
            )

    def _rebuild(self, workspace: Workspace, result: SyncResult) -> None:
        objects = self._list(self.remote.listing_prefix)
        if not objects:
            logger.info(f"No existing objects found in {self.remote.url()}")
            result.plan = SyncPlan.NOTHING_TO_REBUILD
            return

        result.plan = SyncPlan.REBUILD
        logger.info(f"Found {len(objects)} objects in {self.remote.url()}")
        for obj in objects:
            relative = self.remote.relative_path(obj.key)
            self._download(obj.key, workspace.local_path(workspace.new, relative), result)
        logger.info("Existing repository downloaded from S3")

        snapshot = RepositorySnapshot(workspace.new)
        if self.config.regenerate_catalog:
            logger.info("Regenerating repository metadata")
            self.builder.build(workspace.new)

        if snapshot.catalog.exists():
            self._verify_catalog(snapshot)
        else:
            logger.warning(f"No repository metadata found in {self.remote.url()}")

        if self.config.sign:
            logger.info("Signing repository metadata")
            self._sign_catalog(snapshot.catalog)

        self._replace(snapshot, result, replace_catalog=True)

    def _publish(
        self,
        workspace: Workspace,
        artifacts: List[PackageArtifact],
        result: SyncResult,
    ) -> None:
        for artifact in artifacts:
            if self.config.sign:
                self.signer.sign_package(artifact.source_path, self.passphrase)
                artifact.signature = SignatureState.SIGNED

            dest = workspace.new / artifact.filename
            logger.info(f"Copying {artifact.source_path} to {dest}")
            try:
                shutil.copyfile(artifact.source_path, dest)
            except OSError as e:
                raise LocalIOError("copy", str(artifact.source_path), e) from e
            result.packages.append(artifact.filename)

        result.signed = [
            artifact.filename for artifact in artifacts
            if artifact.signature == SignatureState.SIGNED
        ]
        if result.signed:
            logger.info(f"Signed {len(result.signed)} of {len(artifacts)} RPMs")

        logger.info("Building repository metadata for new RPMs")
        self.builder.build(workspace.new)

        existing = self._list(self.remote.repodata_prefix)
        if not existing:
            logger.info("No existing repodata found in S3. Uploading new RPMs and repodata")
            result.plan = SyncPlan.FRESH_PUBLISH
            snapshot = RepositorySnapshot(workspace.new)
            self._verify_catalog(snapshot, required=result.packages)
            if self.config.sign:
                logger.info("Signing new repository metadata")
                self._sign_catalog(snapshot.catalog)
            self._replace(snapshot, result, replace_catalog=False)
            return

        result.plan = SyncPlan.INCREMENTAL_PUBLISH
        logger.info(f"Found {len(existing)} repodata objects in {self.remote.url()}")
        old_repodata = workspace.old / REPODATA_DIR
        for obj in existing:
            relative = obj.key[len(self.remote.repodata_prefix):]
            self._download(obj.key, workspace.local_path(old_repodata, relative), result)

        logger.info("Merging published and new repository metadata")
        catalog = self.merger.merge(workspace.old, workspace.new, workspace.merged)
        logger.info(f"Merged catalog revision {catalog.revision()}")

        merged = RepositorySnapshot(workspace.merged)
        self._verify_catalog(
            merged,
            published=Catalog(workspace.old).package_locations(),
            required=result.packages,
        )

        if self.config.sign:
            logger.info("Signing merged repository metadata")
            self._sign_catalog(catalog)

        self._replace(merged, result, replace_catalog=True)

    def _replace(
        self,
        snapshot: RepositorySnapshot,
        result: SyncResult,
        replace_catalog: bool,
    ) -> None:
        """Upload a snapshot, replacing the remote catalog if asked to."""
        files = {
            path.relative_to(snapshot.root).as_posix(): path
            for path in snapshot.files()
        }
        strategy = self.config.replace_strategy

        if replace_catalog and strategy == ReplaceStrategy.REPLACE:
            logger.info("Deleting old repodata from S3")
            self._delete_repodata(result, keep=set())

        uploaded_keys = set()
        for relative in sorted(files, key=_upload_order):
            key = self.remote.key_for(relative)
            self.store.put(
                self.remote.bucket, key, str(files[relative]), self.config.visibility
            )
            uploaded_keys.add(key)
            result.uploaded.append(key)

        if replace_catalog and strategy == ReplaceStrategy.STAGED:
            logger.info("Deleting superseded repodata from S3")
            self._delete_repodata(result, keep=uploaded_keys)

    def _delete_repodata(self, result: SyncResult, keep: set) -> None:
        keys = [
            obj.key for obj in self._list(self.remote.repodata_prefix)
            if obj.key not in keep
        ]
        if not keys:
            logger.info(f"No repodata to delete in {self.remote.url()}")
            return

        logger.info(f"Found {len(keys)} repodata objects to delete")
        outcome = self.store.delete_batch(self.remote.bucket, keys)
        result.deleted.extend(outcome.deleted)
        result.delete_failures.update(outcome.failed)
