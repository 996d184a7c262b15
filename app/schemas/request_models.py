# schemas/request_models.py
from pydantic import BaseModel
from typing import Optional


class HealthResponse(BaseModel):
    """Upload ingress health"""
    status: str = "healthy"
    message: str = ""
    s3_status: Optional[str] = None
    sqs_status: Optional[str] = None
