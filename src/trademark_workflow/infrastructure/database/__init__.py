"""Database infrastructure: engine, ORM models, and repositories."""

from trademark_workflow.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
    session_scope,
)
from trademark_workflow.infrastructure.database.orm_models import (
    Base,
    Profile,
    StatusLogEntry,
    TrademarkApplication,
    TrademarkPayment,
)
from trademark_workflow.infrastructure.database.repositories import (
    ApplicationRepository,
    PaymentRepository,
    ProfileRepository,
    StatusLogRepository,
)

__all__ = [
    "Base",
    "Profile",
    "StatusLogEntry",
    "TrademarkApplication",
    "TrademarkPayment",
    "ApplicationRepository",
    "PaymentRepository",
    "ProfileRepository",
    "StatusLogRepository",
    "get_async_session",
    "init_db",
    "close_db",
    "session_scope",
]
