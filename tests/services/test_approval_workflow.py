"""
Tests for the tiered approval workflow.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from vendorspend.core.clock import utcnow
from vendorspend.core.exceptions import AuthorizationError, ValidationError, WorkflowError
from vendorspend.models.approval import ApprovalDecision, ApprovalStatus
from vendorspend.models.invoice import InvoiceStatus
from vendorspend.services.approval_service import DECISION_PERMISSIONS, ApprovalService
from vendorspend.services.auth_service import Principal


def approver(*roles, permissions=None):
    return Principal(
        user_id=uuid.uuid4(),
        roles=list(roles),
        permissions=list(DECISION_PERMISSIONS.values()) if permissions is None else permissions,
    )


@pytest.fixture
def open_request(db_session, make_invoice):
    """Persist an invoice and a Pending approval request for it."""

    async def _open(gross_amount=Decimal("1000.00")):
        invoice = await make_invoice(gross_amount=gross_amount)
        request = await ApprovalService(db_session).create_approval_request(invoice, None)
        await db_session.commit()
        return request

    return _open


class TestCreateApprovalRequest:

    @pytest.mark.asyncio
    async def test_request_starts_pending_at_amount_band(self, db_session, open_request, contract_setup):
        request = await open_request(Decimal("15000.00"))

        loaded = await ApprovalService(db_session).get_request(request.id)

        assert loaded.current_status == ApprovalStatus.PENDING
        assert loaded.current_level_id == contract_setup.levels[2].id
        assert loaded.assigned_to_role == "CFO"
        assert loaded.escalation_count == 0
        assert loaded.required_by_date - loaded.assigned_date == timedelta(days=3)
        assert len(loaded.history) == 1
        assert loaded.history[0].status_from is None
        assert loaded.history[0].status_to == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_no_matching_level(self, db_session, make_invoice):
        invoice = await make_invoice()

        with pytest.raises(WorkflowError):
            await ApprovalService(db_session).create_approval_request(invoice, None, levels=[])


class TestApprovalDecisions:

    @pytest.mark.asyncio
    async def test_approve_defaults_to_gross_amount(self, db_session, open_request, principal):
        request = await open_request()

        result = await ApprovalService(db_session).apply_decision(request.id, principal, ApprovalDecision.APPROVE)

        assert result.current_status == ApprovalStatus.APPROVED
        assert result.approved_amount == Decimal("1000.00")
        assert result.decision == ApprovalDecision.APPROVE
        assert result.decision_by == principal.user_id
        assert result.invoice.status == InvoiceStatus.APPROVED
        assert [h.status_to for h in result.history] == [ApprovalStatus.PENDING, ApprovalStatus.APPROVED]
        assert result.history[-1].amount_change == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_approve_partial_amount(self, db_session, open_request, principal):
        request = await open_request()

        result = await ApprovalService(db_session).apply_decision(
            request.id, principal, ApprovalDecision.APPROVE, approved_amount=Decimal("900.00")
        )

        assert result.approved_amount == Decimal("900.00")

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, db_session, open_request, principal):
        request = await open_request()

        with pytest.raises(ValidationError) as exc_info:
            await ApprovalService(db_session).apply_decision(
                request.id, principal, ApprovalDecision.REJECT, rejection_reason="  "
            )

        assert exc_info.value.error_code == "REJECTION_REASON_REQUIRED"

    @pytest.mark.asyncio
    async def test_reject_is_terminal(self, db_session, open_request, principal):
        request = await open_request()
        service = ApprovalService(db_session)

        result = await service.apply_decision(
            request.id, principal, ApprovalDecision.REJECT, rejection_reason="Pricing above contract"
        )

        assert result.current_status == ApprovalStatus.REJECTED
        assert result.rejection_reason == "Pricing above contract"
        assert result.invoice.status == InvoiceStatus.REJECTED

        with pytest.raises(WorkflowError):
            await service.apply_decision(request.id, principal, ApprovalDecision.APPROVE)

    @pytest.mark.asyncio
    async def test_dispute_is_a_hold(self, db_session, open_request, principal):
        request = await open_request()
        service = ApprovalService(db_session)

        disputed = await service.apply_decision(
            request.id, principal, ApprovalDecision.DISPUTE, comments="Vendor contacted about credit"
        )
        assert disputed.current_status == ApprovalStatus.DISPUTED
        assert disputed.invoice.status == InvoiceStatus.PENDING

        approved = await service.apply_decision(request.id, principal, ApprovalDecision.APPROVE)
        assert approved.current_status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_unassigned_role_is_refused(self, db_session, open_request):
        request = await open_request()

        with pytest.raises(AuthorizationError):
            await ApprovalService(db_session).apply_decision(
                request.id, approver("Finance Director"), ApprovalDecision.APPROVE
            )

    @pytest.mark.asyncio
    async def test_missing_decision_permission_is_refused(self, db_session, open_request):
        request = await open_request()
        clerk = approver("AP Manager", permissions=["approvals:view", "approvals:approve"])

        with pytest.raises(AuthorizationError) as exc_info:
            await ApprovalService(db_session).apply_decision(
                request.id, clerk, ApprovalDecision.REJECT, rejection_reason="No PO"
            )

        assert exc_info.value.details["required_permission"] == "approvals:reject"

    @pytest.mark.asyncio
    async def test_super_admin_may_decide_any_request(self, db_session, open_request):
        request = await open_request(Decimal("15000.00"))

        result = await ApprovalService(db_session).apply_decision(
            request.id, approver("Super Admin"), ApprovalDecision.APPROVE
        )

        assert result.current_status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_directly_assigned_user_may_decide(self, db_session, open_request):
        request = await open_request()
        delegate = approver("AP Clerk")
        request.assigned_to_user_id = delegate.user_id
        await db_session.commit()

        result = await ApprovalService(db_session).apply_decision(request.id, delegate, ApprovalDecision.APPROVE)

        assert result.current_status == ApprovalStatus.APPROVED


class TestEscalation:

    @pytest.mark.asyncio
    async def test_escalate_moves_to_next_level(self, db_session, open_request, principal, contract_setup):
        request = await open_request()
        service = ApprovalService(db_session)

        result = await service.apply_decision(request.id, principal, ApprovalDecision.ESCALATE)

        assert result.current_status == ApprovalStatus.PENDING
        assert result.current_level_id == contract_setup.levels[1].id
        assert result.assigned_to_role == "Finance Director"
        assert result.escalation_count == 1
        assert result.history[-1].comments == "Escalated to Director"

        # the original approver no longer holds the assignment
        with pytest.raises(AuthorizationError):
            await service.apply_decision(request.id, principal, ApprovalDecision.APPROVE)

    @pytest.mark.asyncio
    async def test_escalate_from_top_level(self, db_session, open_request, contract_setup):
        request = await open_request(Decimal("15000.00"))
        cfo = approver("CFO")
        service = ApprovalService(db_session)

        escalated = await service.apply_decision(request.id, cfo, ApprovalDecision.ESCALATE)

        assert escalated.current_status == ApprovalStatus.ESCALATED
        assert escalated.current_level_id == contract_setup.levels[2].id
        assert escalated.escalation_count == 1

        approved = await service.apply_decision(request.id, cfo, ApprovalDecision.APPROVE)
        assert approved.current_status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_overdue_requests_are_escalated(self, db_session, open_request, contract_setup):
        overdue = await open_request()
        service = ApprovalService(db_session)

        assert await service.check_and_escalate_overdue(utcnow() + timedelta(days=1)) == []

        escalated = await service.check_and_escalate_overdue(utcnow() + timedelta(days=4))

        assert escalated == [overdue.id]
        reloaded = await service.get_request(overdue.id)
        assert reloaded.current_level_id == contract_setup.levels[1].id
        assert reloaded.history[-1].changed_by is None

    @pytest.mark.asyncio
    async def test_terminal_request_cannot_be_escalated(self, db_session, open_request, principal):
        request = await open_request()
        service = ApprovalService(db_session)
        await service.apply_decision(request.id, principal, ApprovalDecision.APPROVE)

        with pytest.raises(WorkflowError):
            await service.escalate(request.id, None)


class TestListRequests:

    @pytest.mark.asyncio
    async def test_filters_by_status_and_role(self, db_session, open_request, principal):
        first = await open_request()
        second = await open_request(Decimal("5000.00"))
        service = ApprovalService(db_session)
        await service.apply_decision(first.id, principal, ApprovalDecision.APPROVE)

        pending, total = await service.list_requests(status=ApprovalStatus.PENDING)
        assert total == 1
        assert [r.id for r in pending] == [second.id]

        by_role, _ = await service.list_requests(assigned_role="AP Manager")
        assert [r.id for r in by_role] == [first.id]
