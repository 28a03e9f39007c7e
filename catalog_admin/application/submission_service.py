"""Catalog submission service.

Orchestrates the creation-form write sequence:
1. Resolve the product row for the category triple (or create it)
2. Persist variants: upload images, insert variant rows
3. Persist add-ons: insert the add-on category, then upload images
   and insert add-on variant rows

Every successful write is recorded in a compensation log. A failed
entity undoes its own writes; an atomic submission undoes all of
them. Whether a phase goes on after a failed entity is decided by
its FailurePolicy.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from catalog_admin.catalog.repository import CatalogRepository
from catalog_admin.domain.drafts import AddonDraft, ProductDraft, VariantDraft
from catalog_admin.domain.entities import (
    ADDON_CATEGORIES_TABLE,
    ADDON_VARIANTS_TABLE,
    PRODUCTS_TABLE,
    VARIANTS_TABLE,
    AddonCategory,
    AddonVariant,
    Product,
    Variant,
)
from catalog_admin.domain.exceptions import (
    AmbiguousProductError,
    CatalogError,
    RemoteError,
    UploadError,
)
from catalog_admin.domain.value_objects import (
    CategoryTriple,
    ImageData,
    addon_variant_image_key,
    variant_additional_image_key,
    variant_main_image_key,
)
from catalog_admin.infrastructure.config import FailurePolicy, settings
from catalog_admin.infrastructure.provider import get_backend

logger = structlog.get_logger()


# ============================================================================
# Notifications
# ============================================================================


@dataclass
class Notification:
    """A message for the admin user."""

    level: str
    message: str


class Notifier:
    """Collects notifications and logs each one."""

    def __init__(self, request_id: str | None = None) -> None:
        self.request_id = request_id
        self.notifications: list[Notification] = []

    def _add(self, level: str, message: str, **context: Any) -> None:
        self.notifications.append(Notification(level=level, message=message))
        log = logger.error if level == "error" else logger.info
        log(message, notification=level, request_id=self.request_id, **context)

    def success(self, message: str, **context: Any) -> None:
        self._add("success", message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._add("info", message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._add("error", message, **context)


# ============================================================================
# Compensation Log
# ============================================================================


@dataclass
class Compensation:
    """Undo action for one successful write."""

    description: str
    undo: Callable[[], Awaitable[None]]


class CompensationLog:
    """Records successful writes and replays their undo actions.

    Undo runs in reverse order of the writes. Failed undo actions
    are collected and returned, never raised.
    """

    def __init__(self, repo: CatalogRepository) -> None:
        self.repo = repo
        self._entries: list[Compensation] = []

    def __len__(self) -> int:
        return len(self._entries)

    def mark(self) -> int:
        """Position to roll back to."""
        return len(self._entries)

    def record_row(self, table: str, record_id: Any) -> None:
        async def undo() -> None:
            await self.repo.delete(table, record_id)

        self._entries.append(Compensation(f"delete {table}.id={record_id}", undo))

    def record_upload(self, key: str) -> None:
        async def undo() -> None:
            await self.repo.remove_images([key])

        self._entries.append(Compensation(f"remove {self.repo.bucket}/{key}", undo))

    async def rollback(self, since: int = 0) -> list[str]:
        """Undo every write recorded after ``since``.

        Returns:
            Descriptions of undo actions that failed.
        """
        failures = []
        while len(self._entries) > since:
            entry = self._entries.pop()
            try:
                await entry.undo()
                logger.info("Compensated write", action=entry.description)
            except CatalogError as e:
                logger.error(
                    "Compensation failed", action=entry.description, error=e.message
                )
                failures.append(entry.description)
        return failures


# ============================================================================
# Result Types
# ============================================================================


@dataclass
class EntityFailure:
    """A variant or add-on that could not be persisted."""

    index: int
    title: str | None
    stage: str
    reason: str


@dataclass
class ImageFailure:
    """An additional image that could not be uploaded."""

    variant_index: int
    image_index: int
    reason: str


@dataclass
class PhaseReport:
    """Outcome of one persistence phase."""

    committed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[EntityFailure] = field(default_factory=list)
    image_failures: list[ImageFailure] = field(default_factory=list)
    halted: bool = False
    aborted: bool = False
    parent_id: int | None = None

    @property
    def has_failures(self) -> bool:
        return bool(self.failed) or self.aborted


@dataclass
class ResolveResult:
    """Outcome of resolving a category triple."""

    product_id: int
    created: bool


@dataclass
class SubmissionReport:
    """Outcome of a whole submission."""

    product_id: int | None = None
    product_created: bool = False
    variants: PhaseReport = field(default_factory=PhaseReport)
    addons: PhaseReport = field(default_factory=PhaseReport)
    rolled_back: bool = False
    notifications: list[Notification] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None

    @property
    def addon_category_id(self) -> int | None:
        return self.addons.parent_id

    @property
    def success(self) -> bool:
        return (
            self.error is None
            and not self.variants.has_failures
            and not self.addons.has_failures
        )


# ============================================================================
# Catalog Resolver
# ============================================================================


class CatalogResolver:
    """Finds the product row for a category triple, creating it if absent."""

    def __init__(self, repo: CatalogRepository) -> None:
        self.repo = repo

    async def resolve(self, triple: CategoryTriple) -> ResolveResult:
        """Resolve or create the product for a triple.

        Args:
            triple: Category, subcategory and sub-subcategory.

        Returns:
            ResolveResult with the product id and whether it was created.

        Raises:
            AmbiguousProductError: If several products match.
            RemoteQueryError: If the lookup fails.
            RemoteWriteError: If the insert fails.
        """
        rows = await self.repo.find_products(triple)

        if len(rows) > 1:
            raise AmbiguousProductError(triple.as_tuple(), [r["id"] for r in rows])

        if rows:
            return ResolveResult(product_id=rows[0]["id"], created=False)

        row = await self.repo.insert(PRODUCTS_TABLE, Product.from_triple(triple).to_row())
        logger.info("Product created", product_id=row["id"], triple=str(triple))
        return ResolveResult(product_id=row["id"], created=True)


# ============================================================================
# Phase Persisters
# ============================================================================


class _EntityFailed(Exception):
    """An entity sub-step failed; carries the stage for the report."""

    def __init__(self, stage: str, error: RemoteError) -> None:
        super().__init__(error.message)
        self.stage = stage
        self.error = error


class _Persister:
    """Shared entity loop for the variant and add-on phases."""

    entity_name = "entity"

    def __init__(
        self,
        repo: CatalogRepository,
        log: CompensationLog,
        notifier: Notifier,
        policy: FailurePolicy,
    ) -> None:
        self.repo = repo
        self.log = log
        self.notifier = notifier
        self.policy = policy

    async def _run(
        self,
        drafts: tuple[Any, ...],
        report: PhaseReport,
        persist_one: Callable[[int, Any], Awaitable[int]],
    ) -> PhaseReport:
        for index, draft in enumerate(drafts):
            if not draft.is_complete:
                report.skipped.append(index)
                logger.info(
                    f"Skipping incomplete {self.entity_name}",
                    index=index,
                    missing=draft.missing,
                )
                continue

            mark = self.log.mark()
            try:
                record_id = await persist_one(index, draft)
            except _EntityFailed as e:
                undo_failures = await self.log.rollback(since=mark)
                report.failed.append(
                    EntityFailure(
                        index=index,
                        title=draft.title,
                        stage=e.stage,
                        reason=e.error.message,
                    )
                )
                self.notifier.error(
                    f"Error during {e.stage} for {self.entity_name}: {draft.title}",
                    index=index,
                    error=e.error.message,
                )
                for action in undo_failures:
                    self.notifier.error(f"Could not undo write: {action}")

                if self.policy is FailurePolicy.HALT:
                    report.halted = True
                    remaining = len(drafts) - index - 1
                    if remaining:
                        self.notifier.info(
                            f"Stopped processing {remaining} remaining {self.entity_name}(s)"
                        )
                    break
                continue
            except Exception:
                for action in await self.log.rollback(since=mark):
                    self.notifier.error(f"Could not undo write: {action}")
                raise

            report.committed.append(record_id)
            self.notifier.success(
                f"{self.entity_name.capitalize()} {draft.title} added successfully.",
                record_id=record_id,
            )
        return report

    async def _upload(self, stage: str, key: str, image: ImageData) -> str:
        try:
            stored = await self.repo.upload_image(key, image)
        except UploadError as e:
            raise _EntityFailed(stage, e) from e
        self.log.record_upload(stored)
        return stored

    async def _insert(self, table: str, row: dict[str, Any]) -> int:
        try:
            inserted = await self.repo.insert(table, row)
        except RemoteError as e:
            raise _EntityFailed("insert", e) from e
        self.log.record_row(table, inserted["id"])
        return inserted["id"]


class VariantPersister(_Persister):
    """Uploads variant images and inserts variant rows."""

    entity_name = "variant"

    async def persist(
        self, product_id: int, variants: tuple[VariantDraft, ...]
    ) -> PhaseReport:
        """Persist variants in order under product_id.

        Args:
            product_id: Owning product.
            variants: Variant drafts; incomplete ones are skipped.

        Returns:
            PhaseReport for the variant phase.
        """
        report = PhaseReport(parent_id=product_id)

        async def persist_one(index: int, draft: VariantDraft) -> int:
            main_key = await self._upload(
                "image upload",
                variant_main_image_key(draft.title, product_id),
                draft.main_image,
            )
            additional_keys = await self._upload_additional(
                product_id, index, draft, report
            )
            variant = Variant(
                id=None,
                product_id=product_id,
                title=draft.title,
                price=draft.price,
                details=draft.details,
                image=main_key,
                additional_images=additional_keys,
                segment=draft.segment,
                dimensions=draft.dimensions,
                manufacturer=draft.manufacturer,
            )
            return await self._insert(VARIANTS_TABLE, variant.to_row())

        return await self._run(variants, report, persist_one)

    async def _upload_additional(
        self,
        product_id: int,
        variant_index: int,
        draft: VariantDraft,
        report: PhaseReport,
    ) -> list[str]:
        """Upload additional images concurrently.

        Failed images are reported and left out; they never fail the variant.

        Returns:
            Keys of the uploaded images, in input order.
        """
        if not draft.additional_images:
            return []

        keys = [
            variant_additional_image_key(draft.title, i, product_id)
            for i in range(len(draft.additional_images))
        ]
        results = await asyncio.gather(
            *(
                self.repo.upload_image(key, image)
                for key, image in zip(keys, draft.additional_images)
            ),
            return_exceptions=True,
        )

        uploaded = []
        unexpected: list[BaseException] = []
        for image_index, result in enumerate(results):
            if isinstance(result, UploadError):
                report.image_failures.append(
                    ImageFailure(
                        variant_index=variant_index,
                        image_index=image_index,
                        reason=result.message,
                    )
                )
                self.notifier.error(
                    f"Error uploading additional image {image_index} for variant: {draft.title}",
                    error=result.message,
                )
            elif isinstance(result, BaseException):
                unexpected.append(result)
            else:
                self.log.record_upload(result)
                uploaded.append(result)

        # Every successful upload is recorded before raising.
        if unexpected:
            raise unexpected[0]
        return uploaded


class AddonPersister(_Persister):
    """Creates the add-on category and its add-on variants."""

    entity_name = "addon"

    async def persist(
        self,
        product_id: int,
        category_title: str | None,
        addons: tuple[AddonDraft, ...],
    ) -> PhaseReport:
        """Persist the add-on category and add-ons in order.

        Args:
            product_id: Owning product.
            category_title: Title of the add-on category.
            addons: Add-on drafts; incomplete ones are skipped.

        Returns:
            PhaseReport for the add-on phase; parent_id is the category id.
        """
        report = PhaseReport()
        if not category_title or not addons:
            return report

        category = AddonCategory(id=None, title=category_title, product_id=product_id)
        try:
            category_id = await self._insert(ADDON_CATEGORIES_TABLE, category.to_row())
        except _EntityFailed as e:
            report.aborted = True
            self.notifier.error(
                f"Error inserting addon category: {category_title}",
                error=e.error.message,
            )
            return report
        report.parent_id = category_id

        async def persist_one(index: int, draft: AddonDraft) -> int:
            key = await self._upload(
                "image upload",
                addon_variant_image_key(draft.title, category_id),
                draft.image,
            )
            addon = AddonVariant(
                id=None,
                addon_id=category_id,
                title=draft.title,
                price=draft.price,
                image=key,
            )
            return await self._insert(ADDON_VARIANTS_TABLE, addon.to_row())

        return await self._run(addons, report, persist_one)


# ============================================================================
# Submission Service
# ============================================================================


class SubmissionService:
    """Application service running the creation-form write sequence.

    Phases run strictly in order: resolve, variants, add-ons.
    """

    def __init__(
        self,
        repo: CatalogRepository | None = None,
        variant_policy: FailurePolicy | None = None,
        addon_policy: FailurePolicy | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repo: Catalog repository (built from the global backend if omitted).
            variant_policy: Failure policy of the variant phase.
            addon_policy: Failure policy of the add-on phase.
            request_id: Request ID for correlation.
        """
        self.repo = repo or CatalogRepository(get_backend(), settings.storage_bucket)
        self.variant_policy = variant_policy or settings.variant_failure_policy
        self.addon_policy = addon_policy or settings.addon_failure_policy
        self.request_id = request_id

    async def submit(self, draft: ProductDraft, atomic: bool = False) -> SubmissionReport:
        """Run a submission.

        Args:
            draft: Validated product draft.
            atomic: Undo every write of the submission on any failure.

        Returns:
            SubmissionReport describing what was committed.
        """
        notifier = Notifier(request_id=self.request_id)
        log = CompensationLog(self.repo)
        report = SubmissionReport(notifications=notifier.notifications)

        logger.info(
            "Submission started",
            triple=str(draft.triple),
            variants=len(draft.variants),
            addons=len(draft.addons),
            atomic=atomic,
            request_id=self.request_id,
        )

        try:
            resolved = await CatalogResolver(self.repo).resolve(draft.triple)
        except CatalogError as e:
            report.error = e.message
            report.error_code = e.error_code
            notifier.error("Error checking existing product.", error=e.message)
            return report

        report.product_id = resolved.product_id
        report.product_created = resolved.created
        if resolved.created:
            log.record_row(PRODUCTS_TABLE, resolved.product_id)
            notifier.success("New product inserted successfully.", product_id=resolved.product_id)
        else:
            notifier.success(
                "Product already exists. Proceeding with variants and addons.",
                product_id=resolved.product_id,
            )

        try:
            finished = await self._persist_phases(
                draft, resolved.product_id, report, log, notifier, atomic
            )
        except Exception as e:
            logger.error(
                "Submission failed",
                product_id=report.product_id,
                error=str(e),
                request_id=self.request_id,
            )
            report.error = str(e) or type(e).__name__
            report.error_code = "SUBMISSION_FAILED"
            notifier.error("Unexpected error while saving the submission.", error=report.error)
            if atomic:
                await self._rollback(report, log, notifier)
            return report

        if not finished:
            return report

        if report.success:
            notifier.success("Data inserted successfully!")
        else:
            notifier.error("Submission finished with errors.")

        logger.info(
            "Submission finished",
            product_id=report.product_id,
            variants_committed=len(report.variants.committed),
            addons_committed=len(report.addons.committed),
            success=report.success,
            request_id=self.request_id,
        )
        return report

    async def _persist_phases(
        self,
        draft: ProductDraft,
        product_id: int,
        report: SubmissionReport,
        log: CompensationLog,
        notifier: Notifier,
        atomic: bool,
    ) -> bool:
        """Run the variant and add-on phases.

        Returns:
            False if an atomic submission was rolled back.
        """
        halt = FailurePolicy.HALT
        report.variants = await VariantPersister(
            self.repo, log, notifier, halt if atomic else self.variant_policy
        ).persist(product_id, draft.variants)

        if atomic and report.variants.has_failures:
            await self._rollback(report, log, notifier)
            return False

        report.addons = await AddonPersister(
            self.repo, log, notifier, halt if atomic else self.addon_policy
        ).persist(product_id, draft.addon_category_title, draft.addons)

        if atomic and report.addons.has_failures:
            await self._rollback(report, log, notifier)
            return False
        return True

    async def _rollback(
        self, report: SubmissionReport, log: CompensationLog, notifier: Notifier
    ) -> None:
        writes = len(log)
        failures = await log.rollback()
        report.rolled_back = True
        for action in failures:
            notifier.error(f"Could not undo write: {action}")
        notifier.info(f"Submission rolled back ({writes - len(failures)} of {writes} writes undone).")


def get_submission_service(request_id: str | None = None) -> SubmissionService:
    """Get submission service instance.

    Args:
        request_id: Request ID for correlation.

    Returns:
        SubmissionService instance.
    """
    return SubmissionService(request_id=request_id)
