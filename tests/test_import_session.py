"""
Tests for the import session controller lifecycle.

The RPC client and token provider are fakes; every scenario runs on a fresh
event loop via asyncio.run.
"""

import asyncio
import base64

import pytest

from crm_import.domain.imports.errors import (
    AuthTokenError,
    EmptyDocumentError,
    FileSizeError,
    FileTypeError,
    ImportPhaseError,
    MissingColumnsError,
    NetworkImportError,
)
from crm_import.domain.imports.models import ImportPhase, SelectedFile
from crm_import.domain.imports.session import ImportSessionController
from crm_import.domain.imports.variants import CONTACT_IMPORT, CONTACT_MASTER_IMPORT
from crm_import.integrations.auth import StaticTokenProvider
from tests.utils.fakes import FakeRpcClient, csv_file


@pytest.fixture
def make_controller(fake_rpc, token_provider, fast_progress):
    def factory(variant=CONTACT_MASTER_IMPORT, rpc=None, **kwargs):
        options = {
            "rpc_client": rpc or fake_rpc,
            "token_provider": token_provider,
            "progress_factory": fast_progress,
        }
        options.update(kwargs)
        return ImportSessionController(variant, **options)
    return factory


class TestFileSelection:

    def test_valid_file_moves_to_previewing(self, make_controller, master_csv):
        controller = make_controller()
        session = controller.select_file(csv_file(master_csv))

        assert session.phase == ImportPhase.PREVIEWING
        assert session.file_name == "contacts.csv"
        assert session.error is None
        assert session.preview.headers == ["customer_id", "name", "phone"]
        assert session.preview.sample_rows[1] == ["C-002", "Doe, John", "789"]
        assert session.preview.total_row_count == 2

    def test_preview_is_bounded(self, make_controller):
        text = "customer_id\n" + "\n".join(f"C-{i}" for i in range(25))
        session = make_controller().select_file(csv_file(text))

        assert len(session.preview.sample_rows) == 10
        assert session.preview.total_row_count == 25

    @pytest.mark.parametrize("file, error_type", [
        (SelectedFile("contacts.txt", b"customer_id\nC-1"), FileTypeError),
        (SelectedFile("contacts.csv", b"\n \n"), EmptyDocumentError),
        (SelectedFile("contacts.csv", b"name,phone\nA,1"), MissingColumnsError),
    ])
    def test_rejected_file_stays_in_selecting(self, make_controller, fake_rpc, file, error_type):
        controller = make_controller()
        session = controller.select_file(file)

        assert session.phase == ImportPhase.SELECTING
        assert isinstance(session.error, error_type)
        assert session.file is None
        assert session.preview is None
        assert fake_rpc.calls == []

    def test_oversized_file_never_reaches_network(self, make_controller, fake_rpc):
        controller = make_controller(max_file_bytes=1024)
        session = controller.select_file(SelectedFile("big.csv", b"customer_id\n" + b"C-1\n" * 1024))

        assert session.phase == ImportPhase.SELECTING
        assert isinstance(session.error, FileSizeError)
        with pytest.raises(ImportPhaseError):
            asyncio.run(controller.confirm_import())
        assert fake_rpc.calls == []

    def test_default_ceiling_rejects_files_over_ten_megabytes(self, make_controller, fake_rpc):
        content = b"customer_id\n" + b"C-0000001\n" * (1024 * 1024 + 1)
        session = make_controller().select_file(SelectedFile("huge.csv", content))

        assert isinstance(session.error, FileSizeError)
        assert fake_rpc.calls == []

    def test_missing_columns_error_lists_names(self, make_controller):
        session = make_controller().select_file(csv_file("name,phone\nA,1"))
        assert session.error.names == ["customer_id"]

    def test_new_selection_clears_previous_error(self, make_controller, master_csv):
        controller = make_controller()
        controller.select_file(csv_file("name\nA"))
        session = controller.select_file(csv_file(master_csv))

        assert session.phase == ImportPhase.PREVIEWING
        assert session.error is None

    def test_select_while_previewing_is_rejected(self, make_controller, master_csv):
        controller = make_controller()
        controller.select_file(csv_file(master_csv))

        with pytest.raises(ImportPhaseError):
            controller.select_file(csv_file(master_csv))


class TestImport:

    def test_successful_import_reports_outcome(self, make_controller, fake_rpc, master_csv):
        controller = make_controller()
        controller.select_file(csv_file(master_csv))

        session = asyncio.run(controller.confirm_import())

        assert session.phase == ImportPhase.REPORTING
        assert session.progress == 100
        assert session.outcome.imported_count == 2
        assert session.outcome.failed_count == 0
        assert len(fake_rpc.calls) == 1
        call = fake_rpc.calls[0]
        assert call["endpoint"] == "/contact.v1.ContactService/ImportContactWithCustomer"
        assert call["payload"] == {"csv_data": master_csv}
        assert call["token"] == "test-token"

    def test_partial_success_is_reported_not_failed(self, make_controller, master_csv):
        rpc = FakeRpcClient(response={
            "importedCount": 1,
            "failedCount": 1,
            "errors": [{"lineNumber": 3, "errorMessage": "invalid phone"}],
        })
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        session = asyncio.run(controller.confirm_import())

        assert session.phase == ImportPhase.REPORTING
        assert session.error is None
        assert session.outcome.failed_count == 1
        assert session.outcome.errors[0].line_number == 3

    def test_contact_variant_sends_base64_with_customer(self, make_controller, fake_rpc):
        controller = make_controller(variant=CONTACT_IMPORT, customer_id="C-42")
        content = "name,phone\n山田,090\n".encode("shift_jis")
        controller.select_file(SelectedFile("contacts.csv", content))

        asyncio.run(controller.confirm_import())

        call = fake_rpc.calls[0]
        assert call["endpoint"] == "/contact.v1.ContactService/ImportContact"
        assert call["payload"]["customer_id"] == "C-42"
        assert call["payload"]["file_name"] == "contacts.csv"
        assert base64.b64decode(call["payload"]["file_content"]) == content

    def test_contact_variant_requires_customer_id(self, make_controller):
        with pytest.raises(ValueError):
            make_controller(variant=CONTACT_IMPORT)

    def test_network_failure_returns_to_preview_with_file(self, make_controller, master_csv):
        rpc = FakeRpcClient(error=NetworkImportError("upstream unavailable", status_code=503))
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        session = asyncio.run(controller.confirm_import())

        assert session.phase == ImportPhase.PREVIEWING
        assert isinstance(session.error, NetworkImportError)
        assert session.error.detail_text == "upstream unavailable"
        assert session.file_name == "contacts.csv"
        assert session.preview.total_row_count == 2
        assert session.outcome is None

    def test_retry_after_network_failure(self, make_controller, master_csv):
        rpc = FakeRpcClient(error=NetworkImportError("timeout"))
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))
        asyncio.run(controller.confirm_import())

        rpc.error = None
        rpc.response = {"imported_count": 2}
        session = asyncio.run(controller.confirm_import())

        assert session.phase == ImportPhase.REPORTING
        assert session.error is None
        assert len(rpc.calls) == 2

    def test_missing_token_is_reported_like_a_network_failure(self, make_controller, fake_rpc, master_csv):
        controller = make_controller(token_provider=StaticTokenProvider(""))
        controller.select_file(csv_file(master_csv))

        session = asyncio.run(controller.confirm_import())

        assert session.phase == ImportPhase.PREVIEWING
        assert isinstance(session.error, AuthTokenError)
        assert fake_rpc.calls == []

    def test_unexpected_error_does_not_strand_session(self, make_controller, master_csv):
        rpc = FakeRpcClient(error=RuntimeError("boom"))
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        session = asyncio.run(controller.confirm_import())

        assert session.phase == ImportPhase.PREVIEWING
        assert isinstance(session.error, NetworkImportError)

    def test_confirm_before_selecting_is_rejected(self, make_controller):
        with pytest.raises(ImportPhaseError):
            asyncio.run(make_controller().confirm_import())

    def test_on_import_success_callback(self, make_controller, master_csv):
        received = []
        controller = make_controller(on_import_success=received.append)
        controller.select_file(csv_file(master_csv))

        asyncio.run(controller.confirm_import())

        assert len(received) == 1
        assert received[0].imported_count == 2

    def test_callback_not_called_on_failure(self, make_controller, master_csv):
        received = []
        rpc = FakeRpcClient(error=NetworkImportError("down"))
        controller = make_controller(rpc=rpc, on_import_success=received.append)
        controller.select_file(csv_file(master_csv))

        asyncio.run(controller.confirm_import())

        assert received == []


class TestSingleFlight:

    def test_double_confirm_issues_one_call(self, make_controller, master_csv):
        rpc = FakeRpcClient(response={"imported_count": 2}, hold=True)
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            first = asyncio.ensure_future(controller.confirm_import())
            second = asyncio.ensure_future(controller.confirm_import())
            await asyncio.sleep(0.02)
            rpc.release()
            return await first, await second

        first, second = asyncio.run(scenario())

        assert len(rpc.calls) == 1
        assert first.phase == ImportPhase.REPORTING
        assert second.phase == ImportPhase.IMPORTING

    def test_start_import_twice_returns_one_task(self, make_controller, master_csv):
        rpc = FakeRpcClient(response={"imported_count": 2}, hold=True)
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            task = controller.start_import()
            duplicate = controller.start_import()
            await asyncio.sleep(0.02)
            rpc.release()
            await task
            return task, duplicate

        task, duplicate = asyncio.run(scenario())

        assert task is controller.import_task
        assert duplicate is None
        assert len(rpc.calls) == 1
        assert controller.phase == ImportPhase.REPORTING

    def test_progress_climbs_but_only_hits_100_after_response(self, make_controller, master_csv):
        rpc = FakeRpcClient(response={"imported_count": 2}, hold=True)
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            samples = []
            task = controller.start_import()
            for _ in range(20):
                samples.append((controller.phase, controller.progress))
                await asyncio.sleep(0.01)
            rpc.release()
            await task
            samples.append((controller.phase, controller.progress))
            return samples

        samples = asyncio.run(scenario())
        values = [progress for _, progress in samples]

        assert values == sorted(values)
        assert values[0] == 10
        assert all(progress < 100 for phase, progress in samples if phase == ImportPhase.IMPORTING)
        assert samples[-1] == (ImportPhase.REPORTING, 100)

    def test_progress_hits_100_only_after_failed_response(self, make_controller, master_csv):
        rpc = FakeRpcClient(error=NetworkImportError("upstream unavailable", status_code=503), hold=True)
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            samples = []
            task = controller.start_import()
            for _ in range(20):
                samples.append((controller.phase, controller.progress))
                await asyncio.sleep(0.01)
            rpc.release()
            await task
            samples.append((controller.phase, controller.progress))
            return samples

        samples = asyncio.run(scenario())

        assert all(progress < 100 for phase, progress in samples if phase == ImportPhase.IMPORTING)
        assert samples[-1] == (ImportPhase.PREVIEWING, 100)
        assert isinstance(controller.snapshot().error, NetworkImportError)

    def test_cancelled_import_returns_to_preview(self, make_controller, master_csv):
        rpc = FakeRpcClient(response={"imported_count": 2}, hold=True)
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            task = controller.start_import()
            await asyncio.sleep(0.02)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            session = controller.snapshot()
            assert session.phase == ImportPhase.PREVIEWING
            assert isinstance(session.error, NetworkImportError)
            assert session.file_name == "contacts.csv"

            rpc.hold = False
            retry = controller.start_import()
            assert retry is not None
            await retry

        asyncio.run(scenario())

        assert controller.phase == ImportPhase.REPORTING
        assert len(rpc.calls) == 2

    def test_reset_allowed_after_cancelled_import(self, make_controller, master_csv):
        rpc = FakeRpcClient(hold=True)
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            task = controller.start_import()
            await asyncio.sleep(0.02)
            controller.import_task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        session = controller.reset()

        assert session.phase == ImportPhase.SELECTING
        assert session.error is None

    def test_reset_while_importing_is_rejected(self, make_controller, master_csv):
        rpc = FakeRpcClient(hold=True)
        controller = make_controller(rpc=rpc)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            task = controller.start_import()
            await asyncio.sleep(0)
            with pytest.raises(ImportPhaseError):
                controller.reset()
            rpc.release()
            await task

        asyncio.run(scenario())


class TestResetAndClose:

    def test_reset_from_preview_clears_everything(self, make_controller, master_csv):
        controller = make_controller()
        controller.select_file(csv_file(master_csv))

        session = controller.reset()

        assert session.phase == ImportPhase.SELECTING
        assert session.file is None
        assert session.preview is None
        assert session.error is None
        assert session.progress == 0

    def test_reset_from_report_allows_new_selection(self, make_controller, master_csv):
        controller = make_controller()
        controller.select_file(csv_file(master_csv))
        asyncio.run(controller.confirm_import())

        controller.reset()
        session = controller.select_file(csv_file(master_csv, file_name="second.csv"))

        assert session.phase == ImportPhase.PREVIEWING
        assert session.outcome is None
        assert session.file_name == "second.csv"

    def test_close_while_importing_ignores_late_response(self, make_controller, master_csv):
        rpc = FakeRpcClient(response={"imported_count": 2}, hold=True)
        received = []
        controller = make_controller(rpc=rpc, on_import_success=received.append)
        controller.select_file(csv_file(master_csv))

        async def scenario():
            task = controller.start_import()
            await asyncio.sleep(0.02)
            estimator = controller._progress
            controller.close()
            frozen = estimator.value
            rpc.release()
            await task
            await asyncio.sleep(0.03)
            return estimator, frozen

        estimator, frozen = asyncio.run(scenario())

        assert controller.closed
        assert len(rpc.calls) == 1
        assert not estimator.running
        assert estimator.value == frozen
        assert received == []
        session = controller.snapshot()
        assert session.phase == ImportPhase.SELECTING
        assert session.outcome is None

    def test_closed_session_rejects_actions(self, make_controller, master_csv):
        controller = make_controller()
        controller.close()

        with pytest.raises(ImportPhaseError):
            controller.select_file(csv_file(master_csv))
        with pytest.raises(ImportPhaseError):
            controller.reset()

    def test_close_is_idempotent(self, make_controller):
        controller = make_controller()
        controller.close()
        controller.close()
        assert controller.closed
