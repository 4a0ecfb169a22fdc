"""Tests for TicketService create / update / bulk update flows."""

import itertools
import uuid
from datetime import timedelta

import pytest

from ticketflow.core import (
    InvalidTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from ticketflow.tickets.application import TicketCreateDTO, TicketService
from ticketflow.tickets.infrastructure import (
    AuditLogModel,
    ContactModel,
    NotificationModel,
    SQLAlchemyAuditLogRepository,
    SQLAlchemyNotificationRepository,
)

from conftest import (
    FIXED_NOW,
    fetch_all,
    fetch_ticket,
    naive,
    seed_rule,
    seed_sla_policy,
    seed_team,
    seed_ticket,
    seed_workflow,
)


# =============================================================================
# Create
# =============================================================================

@pytest.mark.asyncio
async def test_create_applies_default_sla(ticket_service, background, db, tenant_id, actor_id):
    ticket = await ticket_service.create_ticket(
        tenant_id, actor_id, TicketCreateDTO(subject="Site down", priority="urgent")
    )
    await background.drain()

    assert ticket.code.startswith("TCK-")
    assert ticket.status == "new"
    assert ticket.resolution_due_at - ticket.created_at == timedelta(minutes=240)
    assert ticket.first_response_due_at - ticket.created_at == timedelta(minutes=60)

    stored = await fetch_ticket(db, ticket.id)
    assert naive(stored.resolution_due_at) == naive(FIXED_NOW + timedelta(minutes=240))

    audit = await fetch_all(db, AuditLogModel, AuditLogModel.entity_id == ticket.id)
    assert [row.action for row in audit] == ["create"]
    assert audit[0].actor_id == actor_id


@pytest.mark.asyncio
async def test_create_uses_tenant_sla_policy(ticket_service, background, db, tenant_id):
    await seed_sla_policy(db, tenant_id, "high", 30, 120)

    ticket = await ticket_service.create_ticket(
        tenant_id, None, TicketCreateDTO(subject="VIP customer", priority="high")
    )
    await background.drain()

    assert ticket.first_response_due_at == FIXED_NOW + timedelta(minutes=30)
    assert ticket.resolution_due_at == FIXED_NOW + timedelta(minutes=120)


@pytest.mark.asyncio
async def test_create_routes_by_rule_then_team(ticket_service, background, db, tenant_id):
    agent = uuid.uuid4()
    await seed_rule(db, tenant_id, "vpn", agent)
    technical = await seed_team(db, tenant_id, "Technical")

    by_rule = await ticket_service.create_ticket(
        tenant_id, None, TicketCreateDTO(subject="VPN error", description="cannot connect")
    )
    by_team = await ticket_service.create_ticket(
        tenant_id, None, TicketCreateDTO(subject="Export failed")
    )
    unassigned = await ticket_service.create_ticket(
        tenant_id, None, TicketCreateDTO(subject="Question about pricing")
    )
    await background.drain()

    assert (by_rule.assigned_user_id, by_rule.assigned_team_id) == (agent, None)
    assert (by_team.assigned_user_id, by_team.assigned_team_id) == (None, technical)
    assert (unassigned.assigned_user_id, unassigned.assigned_team_id) == (None, None)


@pytest.mark.asyncio
async def test_create_closed_ticket_stamps_closed_at(ticket_service, background, tenant_id):
    ticket = await ticket_service.create_ticket(
        tenant_id, None, TicketCreateDTO(subject="Already handled", status="closed")
    )
    await background.drain()

    assert ticket.closed_at == FIXED_NOW


@pytest.mark.asyncio
async def test_create_resolves_contact_and_sends_creation_email(
    ticket_service, background, email_service, db, tenant_id
):
    first = await ticket_service.create_ticket(
        tenant_id, None,
        TicketCreateDTO(subject="Hello", contact_email="ada@example.com", contact_name="Ada"),
    )
    second = await ticket_service.create_ticket(
        tenant_id, None,
        TicketCreateDTO(subject="Again", contact_email="ADA@example.com"),
    )
    await background.drain()

    assert first.contact_id is not None
    assert second.contact_id == first.contact_id
    assert len(await fetch_all(db, ContactModel, ContactModel.tenant_id == tenant_id)) == 1

    assert email_service.templates() == ["creation", "creation"]
    assert email_service.sent[0]["to"] == "ada@example.com"
    assert email_service.sent[0]["context"] == {
        "customer_name": "Ada",
        "ticket_code": first.code,
        "subject": "Hello",
    }


@pytest.mark.asyncio
async def test_create_with_unknown_contact_id_is_rejected(ticket_service, db, tenant_id):
    with pytest.raises(ValidationException):
        await ticket_service.create_ticket(
            tenant_id, None, TicketCreateDTO(subject="Hi", contact_id=uuid.uuid4())
        )

    assert await fetch_all(db, AuditLogModel) == []


@pytest.mark.asyncio
async def test_create_triggers_ticket_created_workflows(ticket_service, background, db, tenant_id):
    await seed_workflow(db, tenant_id, "ticket_created",
                        [{"field": "priority", "operator": "equals", "value": "urgent"}],
                        [{"type": "update_field", "field": "category", "value": "p1"}])

    ticket = await ticket_service.create_ticket(
        tenant_id, None, TicketCreateDTO(subject="Outage", priority="urgent")
    )
    await background.drain()

    stored = await fetch_ticket(db, ticket.id)
    assert stored.category == "p1"


@pytest.mark.asyncio
async def test_workflow_failure_does_not_affect_create(ticket_service, background, db, tenant_id):
    await seed_workflow(db, tenant_id, "ticket_created", [], [{"type": "self_destruct"}])

    ticket = await ticket_service.create_ticket(tenant_id, None, TicketCreateDTO(subject="Still fine"))
    await background.drain()

    assert (await fetch_ticket(db, ticket.id)).subject == "Still fine"


@pytest.mark.asyncio
async def test_create_from_email(ticket_service, background, email_service, db, tenant_id):
    ticket = await ticket_service.create_ticket_from_email(
        tenant_id, "Grace Hopper <grace@example.com>", "  ", "The compiler is broken"
    )
    await background.drain()

    assert ticket.channel == "email"
    assert ticket.subject == "(no subject)"
    contacts = await fetch_all(db, ContactModel, ContactModel.id == ticket.contact_id)
    assert (contacts[0].name, contacts[0].email) == ("Grace Hopper", "grace@example.com")
    assert email_service.templates() == ["creation"]


@pytest.mark.asyncio
async def test_create_from_email_rejects_bad_sender(ticket_service, tenant_id):
    with pytest.raises(ValidationException):
        await ticket_service.create_ticket_from_email(tenant_id, "not an address", "Hi", "")


@pytest.mark.asyncio
async def test_create_from_public_form(ticket_service, background, db, tenant_id):
    billing = await seed_team(db, tenant_id, "Billing")

    ticket = await ticket_service.create_ticket_from_public_form(
        tenant_id, "Linus", "linus@example.com", "Payment failed", "card declined"
    )
    await background.drain()

    assert ticket.channel == "web"
    assert ticket.assigned_team_id == billing
    assert ticket.resolution_due_at == FIXED_NOW + timedelta(minutes=2880)


# =============================================================================
# Update
# =============================================================================

@pytest.mark.asyncio
async def test_invalid_transition_leaves_row_untouched(ticket_service, db, tenant_id):
    seeded = await seed_ticket(db, tenant_id, status="resolved", priority="low")

    with pytest.raises(InvalidTransitionException) as exc_info:
        await ticket_service.update_ticket(
            tenant_id, None, seeded.id, {"status": "new", "priority": "urgent"}
        )

    assert exc_info.value.allowed_transitions == ["closed", "open"]
    stored = await fetch_ticket(db, seeded.id)
    assert (stored.status, stored.priority) == ("resolved", "low")
    assert await fetch_all(db, AuditLogModel, AuditLogModel.entity_id == seeded.id) == []


@pytest.mark.asyncio
async def test_update_writes_audit_row(ticket_service, background, db, tenant_id, actor_id):
    seeded = await seed_ticket(db, tenant_id, status="new")

    updated = await ticket_service.update_ticket(
        tenant_id, actor_id, seeded.id, {"status": "open", "impact": "high", "code": "HACKED"}
    )
    await background.drain()

    assert updated.status == "open"
    assert updated.impact == "high"
    assert updated.code == seeded.code

    audit = await fetch_all(db, AuditLogModel, AuditLogModel.entity_id == seeded.id)
    assert len(audit) == 1
    assert audit[0].action == "update"
    assert audit[0].details == {"impact": "high", "status": "open"}
    assert audit[0].actor_id == actor_id


@pytest.mark.asyncio
async def test_update_without_allowed_fields_is_rejected(ticket_service, db, tenant_id):
    seeded = await seed_ticket(db, tenant_id)

    with pytest.raises(ValidationException) as exc_info:
        await ticket_service.update_ticket(tenant_id, None, seeded.id, {"tenant_id": str(uuid.uuid4())})

    assert exc_info.value.message == "No valid fields to update"


@pytest.mark.asyncio
async def test_update_with_bad_priority_is_rejected(ticket_service, db, tenant_id):
    seeded = await seed_ticket(db, tenant_id)

    with pytest.raises(ValidationException):
        await ticket_service.update_ticket(tenant_id, None, seeded.id, {"priority": "critical"})


@pytest.mark.asyncio
async def test_update_other_tenants_ticket_is_not_found(ticket_service, db, tenant_id):
    seeded = await seed_ticket(db, uuid.uuid4())

    with pytest.raises(ResourceNotFoundException):
        await ticket_service.update_ticket(tenant_id, None, seeded.id, {"status": "open"})


@pytest.mark.asyncio
async def test_same_status_update_is_a_no_op(ticket_service, background, db, tenant_id):
    seeded = await seed_ticket(db, tenant_id, status="pending")

    ticket = await ticket_service.update_ticket(tenant_id, None, seeded.id, {"status": "pending"})
    await background.drain()

    assert ticket.status == "pending"
    assert await fetch_all(db, AuditLogModel, AuditLogModel.entity_id == seeded.id) == []


@pytest.mark.asyncio
async def test_assignment_creates_notification_and_in_progress_email(
    ticket_service, background, email_service, db, tenant_id
):
    contact = ContactModel(id=uuid.uuid4(), tenant_id=tenant_id, name="Ada", email="ada@example.com")
    db.add(contact)
    await db.commit()
    seeded = await seed_ticket(db, tenant_id, contact_id=contact.id, subject="Broken laptop")
    agent = uuid.uuid4()

    await ticket_service.update_ticket(tenant_id, None, seeded.id, {"assigned_user_id": str(agent)})
    await background.drain()

    notifications = await fetch_all(db, NotificationModel, NotificationModel.user_id == agent)
    assert len(notifications) == 1
    assert notifications[0].title == "Ticket Assigned"
    assert notifications[0].message == f"You have been assigned ticket {seeded.code}: Broken laptop"
    assert notifications[0].type == "assignment"
    assert email_service.templates() == ["inprogress"]

    # re-assigning the same user notifies nobody
    await ticket_service.update_ticket(
        tenant_id, None, seeded.id, {"assigned_user_id": str(agent), "urgency": "high"}
    )
    await background.drain()
    assert len(await fetch_all(db, NotificationModel, NotificationModel.user_id == agent)) == 1


@pytest.mark.asyncio
async def test_failed_notification_rolls_back_whole_update(
    ticket_service, background, session_maker, monkeypatch, db, tenant_id
):
    seeded = await seed_ticket(db, tenant_id, status="new")

    async def refuse(self, notification):
        raise RuntimeError("notifications table unavailable")

    monkeypatch.setattr(SQLAlchemyNotificationRepository, "create", refuse)

    with pytest.raises(RuntimeError):
        await ticket_service.update_ticket(
            tenant_id, None, seeded.id, {"status": "open", "assigned_user_id": str(uuid.uuid4())}
        )
    await background.drain()

    async with session_maker() as fresh:
        stored = await fetch_ticket(fresh, seeded.id)
        assert stored.status == "new"
        assert stored.assigned_user_id is None
        assert await fetch_all(fresh, AuditLogModel, AuditLogModel.entity_id == seeded.id) == []
        assert await fetch_all(fresh, NotificationModel) == []


@pytest.mark.asyncio
async def test_resolve_and_close_send_lifecycle_emails(
    ticket_service, background, email_service, db, tenant_id
):
    contact = ContactModel(id=uuid.uuid4(), tenant_id=tenant_id, name="Ada", email="ada@example.com")
    db.add(contact)
    await db.commit()
    seeded = await seed_ticket(db, tenant_id, status="open", contact_id=contact.id)

    await ticket_service.update_ticket(
        tenant_id, None, seeded.id, {"status": "resolved", "solution": "Rebooted the router"}
    )
    await background.drain()
    closed = await ticket_service.update_ticket(tenant_id, None, seeded.id, {"status": "closed"})
    await background.drain()

    assert closed.closed_at is not None
    assert email_service.templates() == ["resolution", "closure"]
    assert email_service.sent[0]["context"]["resolution_notes"] == "Rebooted the router"
    assert email_service.sent[1]["context"]["survey_link"] == (
        f"https://support.example.com/feedback/{seeded.code}"
    )

    reopened = await ticket_service.update_ticket(tenant_id, None, seeded.id, {"status": "open"})
    await background.drain()
    assert reopened.closed_at is None


@pytest.mark.asyncio
async def test_lifecycle_emails_skipped_without_contact(
    ticket_service, background, email_service, db, tenant_id
):
    seeded = await seed_ticket(db, tenant_id, status="open")

    await ticket_service.update_ticket(tenant_id, None, seeded.id, {"status": "resolved"})
    await background.drain()

    assert email_service.sent == []


@pytest.mark.asyncio
async def test_allowed_transitions(ticket_service, db, tenant_id):
    seeded = await seed_ticket(db, tenant_id, status="pending")

    result = await ticket_service.get_allowed_transitions(tenant_id, seeded.id)

    assert result.current_status == "pending"
    assert result.allowed_transitions == ["open", "resolved", "closed"]


@pytest.mark.asyncio
async def test_audit_log_is_newest_first(store_factory, background, db, tenant_id):
    ticks = itertools.count()
    service = TicketService(
        store_factory=store_factory,
        background=background,
        clock=lambda: FIXED_NOW + timedelta(minutes=next(ticks)),
    )
    ticket = await service.create_ticket(tenant_id, None, TicketCreateDTO(subject="Audit me"))
    await service.update_ticket(tenant_id, None, ticket.id, {"status": "open"})
    await service.update_ticket(tenant_id, None, ticket.id, {"status": "pending"})

    entries = await service.list_audit_log(tenant_id, ticket.id)

    assert [entry.action for entry in entries] == ["update", "update", "create"]
    assert entries[0].details["status"] == "pending"


# =============================================================================
# Bulk update
# =============================================================================

@pytest.mark.asyncio
async def test_bulk_update_partial_success(ticket_service, db, tenant_id, actor_id):
    valid = await seed_ticket(db, tenant_id, status="open")
    invalid = await seed_ticket(db, tenant_id, status="new")
    missing = uuid.uuid4()

    result = await ticket_service.bulk_update_tickets(
        tenant_id, actor_id, [valid.id, invalid.id, missing], {"status": "pending"}
    )

    assert result.updated == [valid.id]
    errors = {error.id: error for error in result.errors}
    assert errors[missing].error == "Not found"
    assert errors[invalid.id].error == "Invalid transition from new to pending"
    assert errors[invalid.id].allowed_transitions == ["open", "closed"]

    assert (await fetch_ticket(db, valid.id)).status == "pending"
    assert (await fetch_ticket(db, invalid.id)).status == "new"
    audit = await fetch_all(db, AuditLogModel)
    assert len(audit) == 1
    assert (audit[0].entity_id, audit[0].action, audit[0].actor_id) == (valid.id, "bulk_update", actor_id)


@pytest.mark.asyncio
async def test_failed_audit_insert_rolls_back_every_bulk_row(
    ticket_service, session_maker, monkeypatch, db, tenant_id
):
    first = await seed_ticket(db, tenant_id, status="open", priority="medium")
    second = await seed_ticket(db, tenant_id, status="pending", priority="medium")

    async def refuse(self, entries):
        raise RuntimeError("audit_logs table unavailable")

    monkeypatch.setattr(SQLAlchemyAuditLogRepository, "add_many", refuse)

    with pytest.raises(RuntimeError):
        await ticket_service.bulk_update_tickets(
            tenant_id, None, [first.id, second.id], {"status": "closed", "priority": "urgent"}
        )

    async with session_maker() as fresh:
        for ticket_id, status in ((first.id, "open"), (second.id, "pending")):
            stored = await fetch_ticket(fresh, ticket_id)
            assert stored.status == status
            assert stored.priority == "medium"
            assert stored.closed_at is None
        assert await fetch_all(fresh, AuditLogModel) == []


@pytest.mark.asyncio
async def test_bulk_close_stamps_closed_at(ticket_service, db, tenant_id):
    first = await seed_ticket(db, tenant_id, status="open")
    second = await seed_ticket(db, tenant_id, status="resolved")

    result = await ticket_service.bulk_update_tickets(
        tenant_id, None, [first.id, second.id, first.id], {"status": "closed", "priority": "low"}
    )

    assert result.updated == [first.id, second.id]
    for ticket_id in (first.id, second.id):
        stored = await fetch_ticket(db, ticket_id)
        assert stored.status == "closed"
        assert stored.priority == "low"
        assert naive(stored.closed_at) == naive(FIXED_NOW)


@pytest.mark.asyncio
async def test_bulk_update_ignores_non_bulk_fields(ticket_service, db, tenant_id):
    seeded = await seed_ticket(db, tenant_id)

    with pytest.raises(ValidationException):
        await ticket_service.bulk_update_tickets(tenant_id, None, [seeded.id], {"subject": "renamed"})


@pytest.mark.asyncio
async def test_bulk_update_requires_ids(ticket_service, tenant_id):
    with pytest.raises(ValidationException) as exc_info:
        await ticket_service.bulk_update_tickets(tenant_id, None, [], {"status": "open"})
    assert exc_info.value.message == "ticketIds array required"


@pytest.mark.asyncio
async def test_bulk_update_over_ceiling_never_touches_storage(background, tenant_id):
    def no_store():
        raise AssertionError("storage must not be opened")

    service = TicketService(store_factory=no_store, background=background, bulk_max_ids=100)

    with pytest.raises(ValidationException):
        await service.bulk_update_tickets(
            tenant_id, None, [uuid.uuid4() for _ in range(101)], {"status": "open"}
        )
