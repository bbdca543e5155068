from app.schemas.instagram import (
    LeadImportResponse,
    LeadRead,
    MessageResponse,
    PostCreate,
    PostCreatedResponse,
    PostRead,
    ScrapeRequest,
)

__all__ = [
    "LeadImportResponse",
    "LeadRead",
    "MessageResponse",
    "PostCreate",
    "PostCreatedResponse",
    "PostRead",
    "ScrapeRequest",
]
