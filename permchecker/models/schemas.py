"""Pydantic schemas for API request/response validation."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Permission Schemas
# ============================================================================


class PermissionResponse(BaseModel):
    """Schema for a single analysed permission."""

    permission: str
    granted: bool
    protection_level: str = Field(..., pattern="^(normal|dangerous|signature|signatureOrSystem|unknown)$")
    category: str
    readable_name: str
    description: str | None = None
    is_genuine_risk: bool = False
    risk_rule: str | None = None

    class Config:
        from_attributes = True


class PermissionGrantResponse(BaseModel):
    """Schema for a grant-state lookup."""

    package_name: str
    permission: str
    granted: bool


# ============================================================================
# App Schemas
# ============================================================================


class AppPermissionResponse(BaseModel):
    """Schema for an app and its analysed permissions."""

    app_name: str
    package_name: str
    version_name: str | None = None
    version_code: int | None = None
    is_system: bool = False
    is_updated_system: bool = False
    installer_source: str = ""
    install_time: datetime | None = None
    permissions: list[PermissionResponse] = []

    class Config:
        from_attributes = True


class CheckPermissionsRequest(BaseModel):
    """Schema for checking a list of packages."""

    package_names: list[str] = Field(..., min_length=1, max_length=500)
    include_system_apps: bool = False

    @field_validator("package_names")
    @classmethod
    def no_blank_names(cls, v: list[str]) -> list[str]:
        cleaned = [name.strip() for name in v]
        if any(not name for name in cleaned):
            raise ValueError("package names must not be blank")
        return cleaned


class AppListResponse(BaseModel):
    """Schema for the app list."""

    items: list[AppPermissionResponse]
    total: int


# ============================================================================
# Summary Schemas
# ============================================================================


class RiskRankingResponse(BaseModel):
    """Schema for one entry of the risk ranking."""

    package_name: str
    app_name: str
    score: int = Field(..., ge=1)
    dangerous_granted_count: int = Field(..., ge=0)
    normal_granted_count: int = Field(0, ge=0)


class ScanAggregateResponse(BaseModel):
    """Schema for scan-wide totals."""

    total_apps: int = Field(..., ge=0)
    total_permissions: int = Field(..., ge=0)
    total_genuine_risk: int = Field(..., ge=0)
    top_risk_apps: list[RiskRankingResponse] = []


# ============================================================================
# Scan Schemas
# ============================================================================


class ScanCreate(BaseModel):
    """Schema for starting a background scan."""

    include_system_apps: bool | None = None
    only_useful_apps: bool = False
    filter_by_permissions: list[str] = []
    top_n: int | None = Field(None, ge=0)


class ScanStartedResponse(BaseModel):
    """Schema returned when a scan is accepted."""

    epoch: int
    state: str


class ErrorDetail(BaseModel):
    """Structured error body carried in ``HTTPException.detail``."""

    code: str
    message: str


class ScanStatusResponse(BaseModel):
    """Schema for the current scan session."""

    state: str = Field(..., pattern="^(idle|scanning|ready|error)$")
    epoch: int = Field(..., ge=0)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    aggregate: ScanAggregateResponse | None = None
    error: ErrorDetail | None = None
