from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from crm_tables.services.amounts import parse_amount
from crm_tables.services.table_pipeline import Accessor, Record


def text(key: str) -> Accessor:
    def _get(record: Record) -> Any:
        return record.get(key)

    return _get


def number(key: str) -> Accessor:
    def _get(record: Record) -> Any:
        raw = record.get(key)
        parsed = parse_amount(raw)
        if parsed is not None:
            return parsed
        # Unparseable text still sorts, by its text.
        return raw if str(raw or "").strip() else None

    return _get


@dataclass(frozen=True)
class Column:
    uid: str
    label: str
    getter: Callable[[Record], Any]
    sortable: bool = True
    sort_key: Callable[[Record], Any] | None = None


@dataclass(frozen=True)
class EntityDefinition:
    name: str
    label: str
    list_path: str
    create_path: str
    update_path: str
    delete_path: str
    columns: tuple[Column, ...]
    statuses: tuple[str, ...] = ()
    filter_fields: tuple[str, ...] = ()
    status_field: str = "status"
    amount_field: str | None = None
    id_field: str = "_id"
    default_rows_per_page: int = 5

    @property
    def accessors(self) -> dict[str, Accessor]:
        return {column.uid: column.getter for column in self.columns}

    @property
    def sort_keys(self) -> dict[str, Accessor]:
        return {column.uid: column.sort_key for column in self.columns if column.sort_key is not None}

    def column(self, uid: str) -> Column | None:
        for column in self.columns:
            if column.uid == uid:
                return column
        return None

    def record_path(self, template: str, record_id: str) -> str:
        return template.format(id=record_id)


def _amount(uid: str, label: str) -> Column:
    # Filters see the stored text; only ordering is numeric.
    return Column(uid, label, text(uid), sort_key=number(uid))


def _customer_columns() -> tuple[Column, ...]:
    return (
        Column("companyName", "Company Name", text("companyName")),
        Column("customerName", "Client / Customer Name", text("customerName")),
        Column("contactNumber", "Contact Number", text("contactNumber")),
        Column("emailAddress", "Email Address", text("emailAddress")),
        Column("address", "Company Address", text("address")),
        Column("gstNumber", "GST Number", text("gstNumber")),
        Column("productName", "Product Name", text("productName")),
        _amount("amount", "Product Amount"),
    )


def _invoice_columns() -> tuple[Column, ...]:
    return _customer_columns() + (
        _amount("discount", "Discount"),
        _amount("totalWithoutGst", "Before GST"),
        _amount("gstRate", "GST Rate"),
        _amount("totalWithGst", "After GST"),
        Column("date", "Invoice Date", text("date")),
        Column("endDate", "Due Date", text("endDate")),
        _amount("paidAmount", "Paid Amount"),
        _amount("remainingAmount", "Remaining Amount"),
        Column("status", "Status", text("status")),
    )


LEAD_STATUSES = ("Proposal", "New", "Discussion", "Demo", "Decided")
INVOICE_STATUSES = ("Paid", "Unpaid")
TASK_STATUSES = ("Pending", "Resolved", "InProgress")
SCHEDULE_STATUSES = ("Scheduled", "Completed", "Cancelled", "Postpone")

LEAD = EntityDefinition(
    name="lead",
    label="Leads",
    list_path="/lead/getAllLeads",
    create_path="/lead/createLead",
    update_path="/lead/updateLead/{id}",
    delete_path="/lead/deleteLead/{id}",
    columns=_customer_columns()
    + (
        Column("date", "Lead Date", text("date")),
        Column("endDate", "Final Date", text("endDate")),
        Column("notes", "Notes", text("notes")),
        Column("status", "Status", text("status")),
    ),
    statuses=LEAD_STATUSES,
    filter_fields=("companyName", "customerName", "productName", "status"),
    amount_field="amount",
)

DEAL = EntityDefinition(
    name="deal",
    label="Deals",
    list_path="/deal/getAllDeals",
    create_path="/deal/createDeal",
    update_path="/deal/updateDeal/{id}",
    delete_path="/deal/deleteDeal/{id}",
    columns=LEAD.columns,
    statuses=LEAD_STATUSES,
    filter_fields=("companyName", "customerName", "productName", "status"),
    amount_field="amount",
)

INVOICE = EntityDefinition(
    name="invoice",
    label="Invoices",
    list_path="/invoice/getAllInvoices",
    create_path="/invoice/invoiceAdd",
    update_path="/invoice/updateInvoice/{id}",
    delete_path="/invoice/deleteInvoice/{id}",
    columns=_invoice_columns(),
    statuses=INVOICE_STATUSES,
    filter_fields=("companyName", "customerName", "productName", "status"),
    amount_field="totalWithGst",
)

# Reminders are the unpaid slice of invoices and share their write endpoints.
REMINDER = EntityDefinition(
    name="reminder",
    label="Reminders",
    list_path="/invoice/getUnpaidInvoices",
    create_path="/invoice/invoiceAdd",
    update_path="/invoice/updateInvoice/{id}",
    delete_path="/invoice/deleteInvoice/{id}",
    columns=_invoice_columns(),
    statuses=INVOICE_STATUSES,
    filter_fields=("companyName", "customerName", "productName", "status"),
    amount_field="remainingAmount",
)

TASK = EntityDefinition(
    name="task",
    label="Tasks",
    list_path="/task/getAllTasks",
    create_path="/task/createTask",
    update_path="/task/updateTask/{id}",
    delete_path="/task/deleteTask/{id}",
    columns=(
        Column("subject", "Subject", text("subject")),
        Column("relatedTo", "Related To", text("relatedTo")),
        Column("name", "Name", text("name")),
        Column("assigned", "Assigned By", text("assigned")),
        Column("notes", "Task Notes", text("notes")),
        Column("date", "Task Date", text("date")),
        Column("endDate", "Due Date", text("endDate")),
        Column("priority", "Priority", text("priority")),
        Column("status", "Status", text("status")),
    ),
    statuses=TASK_STATUSES,
    filter_fields=("subject", "name", "priority", "status"),
)

SCHEDULE = EntityDefinition(
    name="schedule",
    label="Schedules",
    list_path="/scheduledEvents/getAllScheduledEvents",
    create_path="/scheduledEvents/createScheduledEvent",
    update_path="/scheduledEvents/updateScheduledEvent/{id}",
    delete_path="/scheduledEvents/deleteScheduledEvent/{id}",
    columns=(
        Column("subject", "Subject", text("subject")),
        Column("location", "Event or Meeting Location", text("location")),
        Column("assignedUser", "Hosted By", text("assignedUser")),
        Column("customer", "Member Name", text("customer")),
        Column("eventType", "Event Type", text("eventType")),
        Column("recurrence", "Recurrence", text("recurrence")),
        Column("status", "Status", text("status")),
        Column("priority", "Priority", text("priority")),
        Column("date", "Event Date", text("date")),
        Column("description", "Notes", text("description")),
    ),
    statuses=SCHEDULE_STATUSES,
    filter_fields=("subject", "customer", "eventType", "status"),
)

ENTITIES: dict[str, EntityDefinition] = {
    entity.name: entity for entity in (LEAD, DEAL, INVOICE, TASK, REMINDER, SCHEDULE)
}


def get_entity(name: str) -> EntityDefinition | None:
    return ENTITIES.get(str(name or "").strip().lower())
