from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_photos: int
    pending_photos: int
    approved_photos: int
    rejected_photos: int
    migrated_photos: int
    total_teams: int
    total_users: int
    storage_used_mb: float
