"""Tests for the print service entry points."""

import pytest

from ticketbridge.errors import ValidationError
from ticketbridge.health import PrinterStateWatcher
from ticketbridge.printers.base import PrinterStatus
from ticketbridge.queue import JobStatus, PrintScheduler
from ticketbridge.service import BatchItem, PrintService
from ticketbridge.tickets.models import TicketType


def make_service(backend) -> PrintService:
    scheduler = PrintScheduler(backend, backend, cooldown_sec=0)
    return PrintService(scheduler, PrinterStateWatcher(backend))


class TestSubmitTicket:
    @pytest.mark.asyncio
    async def test_queues_job(self, sample_data, mock_backend):
        service = make_service(mock_backend)

        result = await service.submit_ticket("Comanda", "Cocina", sample_data(TicketType.ORDER_SLIP))
        await service.scheduler.wait_idle()
        await service.scheduler.close()

        assert result.accepted
        assert result.warnings == []
        record = service.scheduler.get_job(result.job_id)
        assert record.status == JobStatus.COMPLETED
        assert record.job.ticket_type == TicketType.ORDER_SLIP

    @pytest.mark.asyncio
    async def test_translations_reach_the_printer(self, sample_data, mock_backend):
        service = make_service(mock_backend)

        await service.submit_ticket(
            TicketType.ORDER_SLIP, "Cocina", sample_data(TicketType.ORDER_SLIP), {"order_slip": "COMANDA"},
        )
        await service.scheduler.wait_idle()
        await service.scheduler.close()

        assert b"COMANDA" in mock_backend.dispatched[0].data

    @pytest.mark.asyncio
    async def test_malformed_payload_never_enters_queue(self, mock_backend):
        service = make_service(mock_backend)

        with pytest.raises(ValidationError):
            await service.submit_ticket(TicketType.PRE_BILL, "Caja", {"mesa": "4"})

        assert service.scheduler.pending_count == 0
        assert not service.scheduler.is_busy

    @pytest.mark.asyncio
    async def test_missing_printer_name(self, sample_data, mock_backend):
        service = make_service(mock_backend)

        with pytest.raises(ValidationError) as exc_info:
            await service.submit_ticket(TicketType.ORDER_SLIP, "  ", sample_data(TicketType.ORDER_SLIP))
        assert exc_info.value.error_code == "MISSING_PRINTER"

    @pytest.mark.asyncio
    async def test_unknown_ticket_type(self, sample_data, mock_backend):
        service = make_service(mock_backend)

        with pytest.raises(ValidationError) as exc_info:
            await service.submit_ticket("invoice", "Caja", sample_data(TicketType.FULL_TICKET))
        assert exc_info.value.error_code == "INVALID_TICKET_TYPE"

    @pytest.mark.asyncio
    async def test_unreachable_printer_is_accepted_then_fails(self, sample_data, mock_backend):
        mock_backend.set_status("Caja", PrinterStatus.DISCONNECTED)
        service = make_service(mock_backend)

        result = await service.submit_ticket(TicketType.FULL_TICKET, "Caja", sample_data(TicketType.FULL_TICKET))
        await service.scheduler.wait_idle()
        await service.scheduler.close()

        assert result.accepted
        assert service.scheduler.get_job(result.job_id).status == JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_warns_when_printer_last_seen_down(self, sample_data, mock_backend):
        service = make_service(mock_backend)
        mock_backend.set_status("Caja", PrinterStatus.DISCONNECTED)
        await service.watcher.check_now()

        down = await service.submit_ticket(TicketType.PRE_BILL, "Caja", sample_data(TicketType.PRE_BILL))
        up = await service.submit_ticket(TicketType.ORDER_SLIP, "Cocina", sample_data(TicketType.ORDER_SLIP))
        await service.scheduler.wait_idle()
        await service.scheduler.close()

        assert down.accepted
        assert down.warnings == ["Printer 'Caja' was last seen disconnected; ticket may not print"]
        assert up.warnings == []
        assert service.scheduler.get_job(down.job_id).status == JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_test_print(self, mock_backend):
        service = make_service(mock_backend)

        result = await service.submit_test_print("Barra")
        await service.scheduler.wait_idle()
        await service.scheduler.close()

        assert result.accepted
        assert b"TEST TICKET" in mock_backend.dispatched[0].data


class TestSubmitBatch:
    @pytest.mark.asyncio
    async def test_partial_success(self, sample_data, mock_backend):
        mock_backend.set_status("Barra", PrinterStatus.INACTIVE)
        service = make_service(mock_backend)

        items = [BatchItem(name, sample_data(TicketType.ORDER_SLIP)) for name in ("Cocina", "Barra", "Caja")]
        result = await service.submit_batch(items)
        await service.scheduler.wait_idle()
        await service.scheduler.close()

        assert result.accepted
        assert result.success_count == 2
        assert result.warnings == ["Printer 'Barra' is not connected or inactive; ticket not printed"]

    @pytest.mark.asyncio
    async def test_empty_batch(self, mock_backend):
        service = make_service(mock_backend)

        with pytest.raises(ValidationError) as exc_info:
            await service.submit_batch([])
        assert exc_info.value.error_code == "EMPTY_BATCH"

    @pytest.mark.asyncio
    async def test_malformed_item_rejects_batch(self, sample_data, mock_backend):
        service = make_service(mock_backend)

        items = [
            BatchItem("Cocina", sample_data(TicketType.ORDER_SLIP)),
            BatchItem("Barra", {"mesa": "4"}),
        ]
        with pytest.raises(ValidationError):
            await service.submit_batch(items)
        assert service.scheduler.pending_count == 0
        assert not service.scheduler.is_busy


class TestPrinterSnapshot:
    @pytest.mark.asyncio
    async def test_snapshot_and_listener(self, mock_backend):
        service = make_service(mock_backend)
        seen = []

        async def on_change(printers):
            seen.append([p.name for p in printers])

        service.on_printer_state_changed(on_change)
        assert service.get_printer_snapshot() == []

        await service.watcher.check_now()
        assert [p.name for p in service.get_printer_snapshot()] == ["Cocina", "Barra", "Caja"]
        assert seen == [["Cocina", "Barra", "Caja"]]
