"""Pydantic schemas for XManage API payloads.

The Gateway encodes limits as strings ("512M", "5G", "50%"). These models keep
them as received; ``gamepanel.units`` turns them into numbers.

API Documentation: https://xmanage-docs.tirito.de/guides/using_api
"""

from pydantic import BaseModel, ConfigDict, Field


class XManageGauge(BaseModel):
    """One reported resource gauge."""

    model_config = ConfigDict(extra="allow")

    used: float = 0
    total: float = 0


class XManageResources(BaseModel):
    """Usage block some XManage deployments attach to a server."""

    model_config = ConfigDict(extra="allow")

    ram: XManageGauge = Field(default_factory=XManageGauge)
    cpu: XManageGauge = Field(default_factory=XManageGauge)
    disk: XManageGauge = Field(default_factory=XManageGauge)


class XManageServer(BaseModel):
    """Server item from GET /servers and GET /servers/{id}."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Unique server ID in XManage")
    server_name: str = Field(..., description="Server display name")
    cpu_limit: str = Field("", description="CPU limit, percent of one core (e.g. '100%')")
    ram_limit: str = Field("", description="RAM limit (e.g. '512M')")
    swap_limit: str = Field("", description="Swap limit (e.g. '0M')")
    disk_limit: str = Field("", description="Disk limit (e.g. '10G')")
    io_weight: int = Field(500, description="Block IO weight")
    ports: str = Field("", description="Port mapping string, first integer is the game port")
    startup: str = Field("", description="Startup command, passed through unmodified")
    status: str | None = Field(None, description="Server status if the list call includes it")
    owner: str | None = Field(None, description="Owning account, not sent by every deployment")
    resources: XManageResources | None = Field(None, description="Reported usage, if any")


class XManageServerCreate(BaseModel):
    """Body for POST /servers and (partially) PATCH /servers/{id}."""

    server_name: str
    cpu_limit: str
    ram_limit: str
    swap_limit: str = "0M"
    disk_limit: str
    io_weight: int = 500
    ports: str = ""
    startup: str


class XManageServerUpdate(BaseModel):
    """Body for PATCH /servers/{id}. Only set fields are sent."""

    server_name: str | None = None
    cpu_limit: str | None = None
    ram_limit: str | None = None
    swap_limit: str | None = None
    disk_limit: str | None = None
    io_weight: int | None = None
    ports: str | None = None
    startup: str | None = None


class XManageStatus(BaseModel):
    """Response of GET /servers/{id}/status."""

    model_config = ConfigDict(extra="allow")

    status: str
    resources: XManageResources | None = None


class XManageBackup(BaseModel):
    """Backup item from GET /servers/{id}/backups."""

    model_config = ConfigDict(extra="allow")

    name: str
    size: int = 0
    created_at: str | None = None
