from beanie import Document
from datetime import datetime


class AuditLogDocument(Document):
    action: str
    entity_type: str
    entity_id: str
    actor: str
    timestamp: datetime
    details: str = ""

    class Settings:
        name = "audit_logs"
