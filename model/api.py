# model/api.py
from typing import Optional
from pydantic import BaseModel


class ComponentsPayload(BaseModel):
    watch: str
    sweep: str


class StatsPayload(BaseModel):
    runs: int = 0
    copied: int = 0
    skipped: int = 0
    removed: int = 0
    errors: int = 0
    sweeps: int = 0
    events: int = 0
    lastSweepAt: Optional[float] = None


class HealthResponse(BaseModel):
    ok: bool
    state: str
    components: ComponentsPayload
    pendingTasks: int = 0
    stats: StatsPayload


class ReadyResponse(BaseModel):
    ready: bool
