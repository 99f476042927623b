"""
Schemas for the log monitoring endpoints
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SinkStats(BaseModel):
    """
    State of one category log file

    Attributes:
        path: Location of the file
        exists: False between a rotation and the next write
        size_bytes: Current size, 0 when absent
    """
    path: str
    exists: bool
    size_bytes: int = Field(..., ge=0)


class LogStats(BaseModel):
    log_dir: str
    sinks: Dict[str, SinkStats] = Field(..., description="Keyed by category (payment, webhook, api, ...)")
    max_bytes: int = Field(..., description="Rotation threshold in bytes")
    rotations: int = Field(0, description="Files rotated since startup")
    last_rotation_check: Optional[str] = Field(None, description="ISO-8601 time of the last sweep")


class RotationResult(BaseModel):
    rotated: List[str] = Field(default_factory=list, description="Backup paths created by the sweep")
