"""
Import session controller.

One controller backs one open import dialog. It walks the session through
SELECTING -> PREVIEWING -> IMPORTING -> REPORTING, owns the single in-flight
import call and the synthetic progress timer, and is parametrized by an
ImportVariant so both import flows share the same lifecycle.
"""
import asyncio
import logging
from typing import Any, Callable, Optional

from crm_import.core.config import settings
from crm_import.domain.imports.errors import CsvImportError, ImportPhaseError, NetworkImportError
from crm_import.domain.imports.models import (
    ImportOutcome,
    ImportPhase,
    ImportSession,
    PreviewView,
    SelectedFile,
)
from crm_import.domain.imports.preview import build_preview
from crm_import.domain.imports.progress import ProgressEstimator
from crm_import.domain.imports.reconciler import reconcile
from crm_import.domain.imports.tokenizer import tokenize
from crm_import.domain.imports.validators import validate_columns, validate_file
from crm_import.domain.imports.variants import ImportVariant
from crm_import.integrations.auth import TokenProvider
from crm_import.integrations.import_rpc import ImportRpcClient

logger = logging.getLogger(__name__)

_RESETTABLE_PHASES = (ImportPhase.SELECTING, ImportPhase.PREVIEWING, ImportPhase.REPORTING)


class ImportSessionController:
    """Drives one CSV import attempt from file selection to the result report."""

    def __init__(
        self,
        variant: ImportVariant,
        *,
        rpc_client: ImportRpcClient,
        token_provider: TokenProvider,
        customer_id: Optional[str] = None,
        preview_limit: Optional[int] = None,
        max_file_bytes: Optional[int] = None,
        progress_factory: Optional[Callable[[], ProgressEstimator]] = None,
        on_import_success: Optional[Callable[[ImportOutcome], Any]] = None,
    ):
        if variant.requires_customer_id and not customer_id:
            raise ValueError(f"Import variant '{variant.name}' requires a customer_id")

        self.variant = variant
        self.customer_id = customer_id
        self._rpc_client = rpc_client
        self._token_provider = token_provider
        self._preview_limit = settings.preview_row_limit if preview_limit is None else preview_limit
        self._max_file_bytes = max_file_bytes
        self._progress_factory = progress_factory or ProgressEstimator
        self._on_import_success = on_import_success

        self._phase = ImportPhase.SELECTING
        self._file: Optional[SelectedFile] = None
        self._preview: Optional[PreviewView] = None
        self._error: Optional[CsvImportError] = None
        self._outcome: Optional[ImportOutcome] = None
        self._progress: Optional[ProgressEstimator] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def phase(self) -> ImportPhase:
        return self._phase

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def progress(self) -> int:
        return self._progress.value if self._progress is not None else 0

    @property
    def import_task(self) -> Optional[asyncio.Task]:
        return self._task

    def snapshot(self) -> ImportSession:
        return ImportSession(
            phase=self._phase,
            variant=self.variant.name,
            file=self._file,
            preview=self._preview,
            error=self._error,
            progress=self.progress,
            outcome=self._outcome,
        )

    def _require(self, action: str, *phases: ImportPhase) -> None:
        if self._closed:
            raise ImportPhaseError(action, "closed")
        if self._phase not in phases:
            raise ImportPhaseError(action, self._phase.value)

    def _clear(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._phase = ImportPhase.SELECTING
        self._file = None
        self._preview = None
        self._error = None
        self._outcome = None
        self._progress = None

    def select_file(self, file: SelectedFile) -> ImportSession:
        """
        Check, parse and validate a chosen file without touching the network.

        On success the session moves to PREVIEWING. On failure it stays in
        SELECTING with the error attached and the file discarded.
        """
        self._require("select a file", ImportPhase.SELECTING)
        self._error = None

        try:
            validate_file(file, self._max_file_bytes)
            document = tokenize(file.read_text())
            validate_columns(document.headers, self.variant.schema)
        except CsvImportError as exc:
            logger.warning(f"Rejected '{file.file_name}' for {self.variant.name} import: {exc.message}")
            self._file = None
            self._preview = None
            self._error = exc
            return self.snapshot()

        self._file = file
        self._preview = build_preview(document, self._preview_limit)
        self._phase = ImportPhase.PREVIEWING
        logger.info(
            f"Previewing '{file.file_name}' ({document.total_row_count} rows) for {self.variant.name} import"
        )
        return self.snapshot()

    def _begin_import(self) -> bool:
        if not self._closed and self._phase == ImportPhase.IMPORTING:
            logger.info(f"Ignoring confirm for {self.variant.name} import: a request is already in flight")
            return False
        self._require("start the import", ImportPhase.PREVIEWING)

        self._phase = ImportPhase.IMPORTING
        self._error = None
        self._outcome = None
        self._progress = self._progress_factory()
        self._progress.start()
        return True

    async def _run_import(self) -> ImportSession:
        file = self._file
        estimator = self._progress
        try:
            try:
                token = await self._token_provider.get_auth_token()
                payload = self.variant.build_payload(file, self.customer_id)
                raw_response = await self._rpc_client.call(self.variant.endpoint, payload, token=token)
            except CsvImportError as exc:
                return self._finish_failure(estimator, exc)
            except asyncio.CancelledError:
                self._finish_interrupted()
                raise
            except Exception as exc:
                logger.exception(f"Unexpected error during {self.variant.name} import")
                return self._finish_failure(estimator, NetworkImportError(str(exc) or type(exc).__name__))
            return self._finish_success(estimator, raw_response)
        finally:
            estimator.stop()

    def _finish_failure(self, estimator: ProgressEstimator, exc: CsvImportError) -> ImportSession:
        if self._closed:
            logger.info(f"Discarding failed {self.variant.name} import for a closed session: {exc.message}")
            return self.snapshot()

        estimator.complete()
        logger.error(f"{self.variant.name} import of '{self._file.file_name}' failed: {exc.message}")
        self._error = exc
        self._phase = ImportPhase.PREVIEWING
        return self.snapshot()

    def _finish_interrupted(self) -> None:
        # The server may still apply the request; the file is kept for a retry.
        if self._closed:
            return
        logger.warning(f"{self.variant.name} import of '{self._file.file_name}' was interrupted")
        self._error = NetworkImportError("import was interrupted")
        self._phase = ImportPhase.PREVIEWING

    def _finish_success(self, estimator: ProgressEstimator, raw_response: Any) -> ImportSession:
        if self._closed:
            logger.info(f"Discarding {self.variant.name} import response for a closed session")
            return self.snapshot()

        estimator.complete()
        outcome = reconcile(raw_response)
        self._outcome = outcome
        self._phase = ImportPhase.REPORTING
        logger.info(
            f"{self.variant.name} import of '{self._file.file_name}' finished: "
            f"{outcome.imported_count} imported, {outcome.failed_count} failed"
        )
        if self._on_import_success is not None:
            self._on_import_success(outcome)
        return self.snapshot()

    async def confirm_import(self) -> ImportSession:
        """
        Send the previewed file to the import RPC and wait for the result.

        A confirm while an import is already in flight is a no-op that returns
        the current snapshot. Network failures return the session to
        PREVIEWING with the file kept so the user can retry.
        """
        if not self._begin_import():
            return self.snapshot()
        return await self._run_import()

    def start_import(self) -> Optional[asyncio.Task]:
        """
        Start the import in a background task and return it.

        Returns None when an import is already in flight. Must be called from
        a running event loop.
        """
        if not self._begin_import():
            return None
        self._task = asyncio.get_running_loop().create_task(self._run_import())
        return self._task

    def reset(self) -> ImportSession:
        """Drop the selected file, preview, error and result and return to SELECTING."""
        self._require("choose another file", *_RESETTABLE_PHASES)
        self._clear()
        return self.snapshot()

    def close(self) -> None:
        """
        Dispose of the session.

        The progress timer is stopped and late responses are ignored. An
        in-flight request is not retracted; the backend may still apply it.
        """
        if self._closed:
            return
        if self._phase == ImportPhase.IMPORTING:
            logger.warning(
                f"Closing {self.variant.name} import session while a request is in flight; "
                "the request will still complete on the server"
            )
        self._clear()
        self._closed = True
