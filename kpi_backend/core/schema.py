from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from kpi_backend.core.name_normalize import normalize_status
from kpi_backend.domain import Agent, DocType, TransactionRecord


class CamelModel(BaseModel):
    """Snake-case models that read and write the camelCase wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


# ----------------------------------------------------------------------
# requests
# ----------------------------------------------------------------------
class StatusInput(CamelModel):
    status: str | None = None

    @field_validator("status")
    @classmethod
    def normalize_status_label(cls, value: str | None) -> str | None:
        return normalize_status(value)


class StartTransactionRequest(StatusInput):
    agent_name: str | None = None
    workspace_email: str | None = None
    tx_id: str | None = None
    type_of_doc: str | None = None
    start_time: str | None = None
    notes: str | None = None
    date: str | None = None


class EndTransactionRequest(StatusInput):
    transaction_id: str | None = None
    end_time: str | None = None
    notes: str | None = None


class UpdateTransactionRequest(StatusInput):
    """Partial correction; only fields present in the payload are applied."""

    transaction_id: str | None = None
    notes: str | None = None
    type_of_doc: str | None = None
    tx_id: str | None = None
    start_time: str | None = None
    end_time: str | None = None

    def changes(self) -> dict[str, str]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if key != "transaction_id" and value is not None
        }


# ----------------------------------------------------------------------
# records
# ----------------------------------------------------------------------
class TransactionModel(CamelModel):
    id: str
    agent_name: str
    workspace_email: str
    month: str
    date: str
    tx_id: str
    type_of_doc: str
    start_time: str
    end_time: str | None = None
    tat_minutes: int = 0
    tat_decimal: float = 0.0
    tat_formatted: str = ""
    status: str
    notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "TransactionModel":
        return cls(
            id=record.id,
            agent_name=record.agent_name,
            workspace_email=record.workspace_email,
            month=record.month,
            date=record.date,
            tx_id=record.tx_id,
            type_of_doc=record.type_of_doc,
            start_time=record.start_time,
            end_time=record.end_time,
            tat_minutes=record.tat_minutes,
            tat_decimal=record.tat_decimal,
            tat_formatted=record.tat_formatted,
            status=record.status,
            notes=record.notes,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class AgentModel(CamelModel):
    id: str
    name: str
    workspace_email: str
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, agent: Agent) -> "AgentModel":
        return cls(id=agent.agent_id, name=agent.name, workspace_email=agent.workspace_email, created_at=agent.created_at)


class DocTypeModel(CamelModel):
    id: str
    name: str
    workspace_email: str
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, doc_type: DocType) -> "DocTypeModel":
        return cls(
            id=doc_type.doc_type_id,
            name=doc_type.name,
            workspace_email=doc_type.workspace_email,
            created_at=doc_type.created_at,
        )


# ----------------------------------------------------------------------
# aggregation views
# ----------------------------------------------------------------------
class AgentStats(CamelModel):
    name: str
    total_tx: int = 0
    done: int = 0
    pending: int = 0
    no_doc: int = 0
    total_minutes: int = 0
    aht_minutes: float = 0.0
    completion_rate: float = 0.0


class DailyTrend(CamelModel):
    date: str
    total: int = 0
    done: int = 0
    pending: int = 0
    no_doc: int = 0
    avg_aht: float = 0.0


class DocTypeStats(CamelModel):
    name: str
    count: int = 0
    avg_tat: float = 0.0


class WorkspaceTotals(CamelModel):
    total_tx: int = 0
    done: int = 0
    pending: int = 0
    no_doc: int = 0
    total_minutes: int = 0
    overall_aht: float = 0.0
    completion_rate: float = 0.0


class AggregateResult(CamelModel):
    per_agent: list[AgentStats] = Field(default_factory=list)
    daily: list[DailyTrend] = Field(default_factory=list)
    per_doc_type: list[DocTypeStats] = Field(default_factory=list)
    totals: WorkspaceTotals = Field(default_factory=WorkspaceTotals)


class AgentDailySummary(CamelModel):
    """End-of-day production figures for one roster agent."""

    name: str
    total_handling_minutes: int = 0
    done: int = 0
    pending: int = 0
    no_doc: int = 0
    total_transactions: int = 0
    aht_minutes: float = 0.0
    transactions: list[TransactionModel] = Field(default_factory=list)


class ReportTable(BaseModel):
    """A named 2-D grid of cells handed to an export renderer."""

    name: str
    rows: list[list[str | int | float | None]] = Field(default_factory=list)
    column_widths: list[int] = Field(default_factory=list)
