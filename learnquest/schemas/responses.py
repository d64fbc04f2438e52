# ============================================================================
# Common Response Schemas
# ============================================================================
from pydantic import BaseModel
from datetime import datetime

class HealthCheckResponse(BaseModel):
    status: str
    app: str
    version: str
    timestamp: datetime
