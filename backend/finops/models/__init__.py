from .users import User
from .finance import Transaction, Invoice, Project, BudgetFigure, RECORD_STATUSES, PROJECT_STATUSES
from .audit import AuditLogEntry, RevokedIdentity

__all__ = [
    'User',
    'Transaction', 'Invoice', 'Project', 'BudgetFigure',
    'RECORD_STATUSES', 'PROJECT_STATUSES',
    'AuditLogEntry', 'RevokedIdentity',
]
